"""
Typed component models

Config and status structures are pydantic models that keep every JSON member
they do not declare. Those members are exposed as ``raw_fields`` and written
back beneath the declared fields when the model is sent to the device, so a
read-modify-write cycle does not drop fields added by newer firmware.
"""

import copy
from typing import Any, Dict, Iterator, List, MutableMapping, Optional, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from shelly_comm.utils.serialization import decode_json, to_wire_strict


class RawFields(MutableMapping):
    """Unknown JSON members captured while decoding a model

    Backed by the model's own extra-field storage, so changes made here are
    visible in the model's wire encoding.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data = data if data is not None else {}

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = to_wire_strict(value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"RawFields({self._data!r})"

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._data.get(key)
        return value if isinstance(value, str) else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self._data.get(key)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return default

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self._data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return float(value)

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        value = self._data.get(key)
        return value if isinstance(value, bool) else default

    def get(self, key: str, default: Any = None, target: Any = None) -> Any:
        """Return a member, validated into ``target`` when given

        A missing member or one that does not fit ``target`` yields ``default``.
        """
        if key not in self._data:
            return default
        if target is None:
            return self._data[key]
        try:
            return TypeAdapter(target).validate_python(self._data[key])
        except ValidationError:
            return default

    def set(self, key: str, value: Any) -> None:
        """Store a member; the value must be JSON-serializable

        Raises:
            TypeError: The value cannot be represented as JSON
        """
        self[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

    def clone(self) -> Dict[str, Any]:
        """Deep copy of the members as a plain dict"""
        return copy.deepcopy(self._data)

    def merge(self, other: Union["RawFields", Dict[str, Any]]) -> None:
        """Copy every member of ``other`` in, overwriting duplicates"""
        for key, value in other.items():
            self[key] = value


class ComponentModel(BaseModel):
    """Base for component config, status and result models"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def raw_fields(self) -> RawFields:
        if self.__pydantic_extra__ is None:
            self.__pydantic_extra__ = {}
        return RawFields(self.__pydantic_extra__)

    def to_params(self) -> Dict[str, Any]:
        """Wire form: declared fields by alias without None, over the raw fields"""
        params = copy.deepcopy(self.__pydantic_extra__ or {})
        params.update(self.model_dump(mode="json", by_alias=True, exclude_none=True))
        return params

    @classmethod
    def from_raw(cls, raw: Union[bytes, str], method: Optional[str] = None):
        """Decode a raw JSON object

        Raises:
            DecodeError: The payload is not valid JSON or does not fit the model
        """
        return decode_json(raw, cls, method)


class SetConfigResult(ComponentModel):
    """Result of every ``<Component>.SetConfig`` call"""
    restart_required: bool = False
