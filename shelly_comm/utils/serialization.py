"""
JSON serialization tools

Provides conversion of request parameters to wire values and a scanner that
splits a JSON document into the raw text of its top-level members, so that a
reply's ``result`` can be handed to callers exactly as the device sent it.
"""

import dataclasses
import json
import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from shelly_comm.rpc.errors import DecodeError

_decoder = json.JSONDecoder()
_whitespace = re.compile(r"[ \t\n\r]*")


def _skip(document: str, index: int) -> int:
    return _whitespace.match(document, index).end()


def to_text(raw: Union[bytes, bytearray, str]) -> str:
    """Decode raw JSON bytes as UTF-8 text

    Raises:
        ValueError: The bytes are not valid UTF-8
    """
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8")


def split_object_members(raw: Union[bytes, str]) -> Dict[str, bytes]:
    """Split a JSON object into the raw bytes of each top-level member value

    Args:
        raw: JSON text of an object

    Returns:
        Dict: member name to the verbatim bytes of its value

    Raises:
        ValueError: The document is not a single valid JSON object
    """
    document = to_text(raw)
    index = _skip(document, 0)
    if document[index:index + 1] != "{":
        raise ValueError("expected a JSON object")
    index = _skip(document, index + 1)

    members: Dict[str, bytes] = {}
    if document[index:index + 1] == "}":
        index += 1
    else:
        while True:
            if document[index:index + 1] != '"':
                raise ValueError(f"expected member name at offset {index}")
            key, index = json.decoder.scanstring(document, index + 1)
            index = _skip(document, index)
            if document[index:index + 1] != ":":
                raise ValueError(f"expected ':' at offset {index}")
            index = _skip(document, index + 1)
            _, end = _decoder.raw_decode(document, index)
            # Last member wins, matching json.loads
            members[key] = document[index:end].encode("utf-8")
            index = _skip(document, end)
            separator = document[index:index + 1]
            if separator == ",":
                index = _skip(document, index + 1)
                continue
            if separator == "}":
                index += 1
                break
            raise ValueError(f"expected ',' or '}}' at offset {index}")

    if _skip(document, index) != len(document):
        raise ValueError("unexpected data after JSON object")
    return members


def split_array_items(raw: Union[bytes, str]) -> List[bytes]:
    """Split a JSON array into the raw bytes of each item

    Raises:
        ValueError: The document is not a single valid JSON array
    """
    document = to_text(raw)
    index = _skip(document, 0)
    if document[index:index + 1] != "[":
        raise ValueError("expected a JSON array")
    index = _skip(document, index + 1)

    items: List[bytes] = []
    if document[index:index + 1] == "]":
        index += 1
    else:
        while True:
            _, end = _decoder.raw_decode(document, index)
            items.append(document[index:end].encode("utf-8"))
            index = _skip(document, end)
            separator = document[index:index + 1]
            if separator == ",":
                index = _skip(document, index + 1)
                continue
            if separator == "]":
                index += 1
                break
            raise ValueError(f"expected ',' or ']' at offset {index}")

    if _skip(document, index) != len(document):
        raise ValueError("unexpected data after JSON array")
    return items


def to_wire(value: Any) -> Any:
    """Convert a parameter value to plain JSON-compatible Python data

    Pydantic models use their own wire encoding (``to_params`` when defined),
    dataclasses are converted with ``asdict``; everything else must already be
    JSON-compatible.

    Raises:
        TypeError: The value cannot be represented as JSON
    """
    if value is None:
        return None
    if isinstance(value, BaseModel):
        to_params = getattr(value, "to_params", None)
        if callable(to_params):
            return to_params()
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_wire_strict({k: v for k, v in dataclasses.asdict(value).items() if v is not None})
    return to_wire_strict(value)


def _encode_nested(value: Any) -> Any:
    if isinstance(value, BaseModel) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return to_wire(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_wire_strict(value: Any) -> Any:
    """Round-trip a value through the JSON encoder, rejecting anything json cannot encode"""
    try:
        return json.loads(json.dumps(value, allow_nan=False, default=_encode_nested))
    except (TypeError, ValueError) as e:
        raise TypeError(f"value is not JSON serializable: {e}") from e


def dumps(value: Any) -> bytes:
    """Serialize a wire value compactly to UTF-8 JSON bytes"""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_json(raw: bytes, target: Optional[Any] = None, method: Optional[str] = None) -> Any:
    """Decode a raw JSON payload into ``target``

    Args:
        raw: JSON bytes
        target: Pydantic model class or any type a pydantic ``TypeAdapter`` accepts;
            plain Python data when None
        method: Method name used for error context

    Raises:
        DecodeError: The payload is not valid JSON or does not fit ``target``
    """
    try:
        if target is None:
            return json.loads(raw)
        validate_json = getattr(target, "model_validate_json", None)
        if validate_json is not None:
            return validate_json(raw)
        return TypeAdapter(target).validate_json(raw)
    except (ValidationError, ValueError, TypeError) as e:
        name = getattr(target, "__name__", repr(target)) if target is not None else "JSON"
        context = f" from {method}" if method else ""
        raise DecodeError(f"failed to decode {name}{context}: {e}", method=method,
                          target=target, payload=raw) from e
