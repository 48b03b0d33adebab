"""
Generic component helpers

Typed GetConfig/GetStatus fetches and SetConfig with id injection, shared by
every component handle. The helpers are stateless and perform no recovery:
transport, protocol and decode errors reach the caller unchanged.
"""

import dataclasses
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from pydantic import BaseModel

from shelly_comm.components.types import SetConfigResult
from shelly_comm.rpc.errors import ComponentIDMismatchError, InvalidRequestError
from shelly_comm.utils.serialization import decode_json, to_wire

if TYPE_CHECKING:
    from shelly_comm.components.base import BaseComponent

logger = logging.getLogger(__name__)


def decode_result(raw: bytes, target: Any, method: Optional[str] = None) -> Any:
    """Decode a raw result into ``target``

    Raises:
        DecodeError: The payload is not valid JSON or does not fit ``target``
    """
    return decode_json(raw, target, method)


async def unmarshal_config(component: "BaseComponent", target: Any = None,
                           timeout: Optional[float] = None) -> Any:
    """Fetch ``<Prefix>.GetConfig`` and decode it into ``target`` (the handle's config model by default)"""
    method = component.method("GetConfig")
    raw = await component.client.call(method, component.id_params(), timeout=timeout)
    return decode_result(raw, target or component.config_model, method)


async def unmarshal_status(component: "BaseComponent", target: Any = None,
                           timeout: Optional[float] = None) -> Any:
    """Fetch ``<Prefix>.GetStatus`` and decode it into ``target`` (the handle's status model by default)"""
    method = component.method("GetStatus")
    raw = await component.client.call(method, component.id_params(), timeout=timeout)
    return decode_result(raw, target or component.status_model, method)


def _id_mismatch(current: Any, expected: int) -> bool:
    return isinstance(current, bool) or current != expected


def _ensure_id_in_mapping(params: Mapping[str, Any], expected: int) -> Any:
    current = params.get("id")
    if current is None:
        updated = dict(params)
        updated["id"] = expected
        return updated
    if _id_mismatch(current, expected):
        raise ComponentIDMismatchError(expected, current)
    return params


def ensure_id(component: "BaseComponent", params: Any = None) -> Any:
    """Return ``params`` carrying the component's id

    ``None`` becomes ``{"id": id}``; a mapping, model or dataclass without an id
    is copied with the id set; one that already carries the same id is returned
    unchanged. The input is never mutated, so applying this twice gives the same
    result as applying it once. Singleton handles return ``params`` as given.

    Raises:
        ComponentIDMismatchError: ``params`` carries a different id
        InvalidRequestError: ``params`` is not an object
    """
    expected = component.id
    if expected is None:
        return params
    if params is None:
        return {"id": expected}

    if isinstance(params, BaseModel):
        if "id" in type(params).model_fields:
            current = getattr(params, "id")
            if current is None:
                return params.model_copy(update={"id": expected})
            if _id_mismatch(current, expected):
                raise ComponentIDMismatchError(expected, current)
            return params
        return _ensure_id_in_mapping(to_wire(params), expected)

    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        if "id" in {f.name for f in dataclasses.fields(params)}:
            current = getattr(params, "id")
            if current is None:
                return dataclasses.replace(params, id=expected)
            if _id_mismatch(current, expected):
                raise ComponentIDMismatchError(expected, current)
            return params
        return _ensure_id_in_mapping(to_wire(params), expected)

    if isinstance(params, Mapping):
        return _ensure_id_in_mapping(params, expected)

    raise InvalidRequestError(f"params for {component.key} must be an object, got {type(params).__name__}")


def _config_body(component: "BaseComponent", config: Any) -> Dict[str, Any]:
    try:
        body = to_wire(config)
    except TypeError as e:
        raise InvalidRequestError(f"config for {component.key} is not JSON serializable: {e}") from e
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise InvalidRequestError(f"config for {component.key} must be an object, got {type(body).__name__}")
    body.pop("id", None)
    return body


async def set_config_with_id(component: "BaseComponent", config: Any,
                             timeout: Optional[float] = None) -> SetConfigResult:
    """Call ``<Prefix>.SetConfig`` for the component

    The config is checked with ``ensure_id`` and sent as
    ``{"id": id, "config": {...}}`` (``{"config": {...}}`` for singletons).
    Raw fields of a model config are sent along with its declared fields.

    Raises:
        ComponentIDMismatchError: The config names another component
        InvalidRequestError: The config is not a JSON object
    """
    checked = ensure_id(component, config)
    params = component.id_params() or {}
    params["config"] = _config_body(component, checked)

    method = component.method("SetConfig")
    logger.debug(f"Setting config of {component.key}: {sorted(params['config'])}")
    raw = await component.client.call(method, params, timeout=timeout)
    return decode_result(raw, SetConfigResult, method)
