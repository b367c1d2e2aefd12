from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from scimpatch.data.identifiers import AttrRep, BoundedAttrRep


class MissingType:
    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls, *args, **kwargs)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Missing"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


Missing = MissingType()


@dataclass
class _AttrKey:
    attr: str
    sub_attr: Optional[str]


@dataclass
class _ExtensionAttrKey(_AttrKey):
    schema: str


_Key = Union[str, AttrRep, _AttrKey]


class ScimData(MutableMapping):
    """
    Mapping that keeps SCIM resource data. Keys are case-insensitive, but the original
    casing of the key that was set first is preserved.

    Supported keys:

    - `str`, used literally as a top-level key, e.g. `userName` or a schema extension URI,
    - `AttrRep`, the value is set directly under the attribute name, or nested under
        the sub-attribute name, if it represents a sub-attribute,
    - `BoundedAttrRep`, works like `AttrRep`, but for attributes from schema extensions
        the value is additionally nested in the schema extension namespace.

    Examples:
        >>> data = ScimData({"name": {"formatted": "John Doe"}})
        >>> data.get(AttrRep(attr="NAME", sub_attr="formatted"))
        "John Doe"
        >>> data.set(
        >>>     BoundedAttrRep(
        >>>         schema="urn:ietf:params:scim:schemas:extension:enterprise:2.0:User",
        >>>         attr="employeeNumber",
        >>>         extension=True,
        >>>     ),
        >>>     "42",
        >>> )
        >>> data.to_dict()
        {
            "name": {"formatted": "John Doe"},
            "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User": {
                "employeeNumber": "42"
            }
        }
    """

    def __init__(self, d: Optional[Mapping] = None):
        self._data: dict[str, Any] = {}
        self._lower_case_to_original: dict[str, str] = {}

        if isinstance(d, ScimData):
            self._data = d._data
            self._lower_case_to_original = d._lower_case_to_original
        elif isinstance(d, Mapping):
            for key, value in d.items():
                if not isinstance(key, (str, AttrRep)):
                    continue
                self.set(key, value)

    def __repr__(self):
        return f"{self.__class__.__name__}({str(self._data)})"

    def __getitem__(self, key: _Key):
        value = self.get(key)
        if value is Missing:
            raise KeyError(key)
        return value

    def __setitem__(self, key: _Key, value: Any):
        self.set(key, value)

    def __delitem__(self, key: _Key):
        value = self.pop(key)
        if value is Missing:
            raise KeyError(key)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self):
        return iter(self._data)

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, (str, AttrRep, _AttrKey)):
            return False
        return self.get(key) is not Missing

    def set(self, key: _Key, value: Any) -> None:
        """
        Sets the entry in the mapping. Equivalent to `data[key] = value`. Nested mappings
        are converted to `ScimData`, including mappings in lists.

        Raises:
            KeyError: If trying to set sub-attribute value to existing parent that is
                not single-valued complex attribute value.
        """
        if isinstance(value, Mapping):
            value = ScimData(value)
        elif not isinstance(value, str) and isinstance(value, Iterable):
            value = [ScimData(item) if isinstance(item, Mapping) else item for item in value]

        key = self._normalize(key)
        if isinstance(key, _ExtensionAttrKey):
            extension = self._get_or_create_nested(key.schema)
            extension.set(_AttrKey(attr=key.attr, sub_attr=key.sub_attr), value)
            return

        if not key.sub_attr:
            original_key = self._lower_case_to_original.setdefault(key.attr.lower(), key.attr)
            self._data[original_key] = value
            return

        parent_value = self._get_or_create_nested(key.attr)
        parent_value.set(_AttrKey(attr=key.sub_attr, sub_attr=None), value)

    def _get_or_create_nested(self, key: str) -> "ScimData":
        original_key = self._lower_case_to_original.get(key.lower())
        if original_key is None:
            original_key = key
            self._lower_case_to_original[key.lower()] = key
            self._data[key] = ScimData()
        value = self._data[original_key]
        if not isinstance(value, ScimData):
            raise KeyError(f"can not nest values under {key!r}, since it is not an object")
        return value

    def get(self, key: _Key, default: Any = Missing) -> Any:
        """
        Returns the value for the specified `key`. If not found, the specified `default`
        is returned (`Missing` object by default). For sub-attributes of multi-valued
        complex attributes, the list of sub-attribute values is returned.
        """
        key = self._normalize(key)
        if isinstance(key, _ExtensionAttrKey):
            extension = self._lower_case_to_original.get(key.schema.lower())
            if extension is None or not isinstance(self._data[extension], ScimData):
                return default
            return self._data[extension].get(
                _AttrKey(attr=key.attr, sub_attr=key.sub_attr), default
            )

        attr = self._lower_case_to_original.get(key.attr.lower())
        if attr is None:
            return default

        if key.sub_attr:
            attr_value = self._data[attr]
            if isinstance(attr_value, ScimData):
                return attr_value.get(_AttrKey(attr=key.sub_attr, sub_attr=None), default)
            if isinstance(attr_value, list):
                return [
                    (
                        item.get(_AttrKey(attr=key.sub_attr, sub_attr=None))
                        if isinstance(item, ScimData)
                        else default
                    )
                    for item in attr_value
                ]
            return default
        return self._data.get(attr, default)

    def pop(self, key: _Key, default: Any = Missing) -> Any:
        """
        Pops the `key` from the data. Works similarly to `get` with the difference that after
        returning the value, it is not available in the data any longer.
        """
        key = self._normalize(key)
        if isinstance(key, _ExtensionAttrKey):
            extension = self._lower_case_to_original.get(key.schema.lower())
            if extension is None or not isinstance(self._data[extension], ScimData):
                return default
            return self._data[extension].pop(
                _AttrKey(attr=key.attr, sub_attr=key.sub_attr), default
            )

        attr = self._lower_case_to_original.get(key.attr.lower())
        if attr is None:
            return default

        if key.sub_attr:
            attr_value = self._data[attr]
            if isinstance(attr_value, ScimData):
                return attr_value.pop(key.sub_attr, default)
            return default

        self._lower_case_to_original.pop(key.attr.lower())
        return self._data.pop(attr, default)

    @staticmethod
    def _normalize(value: _Key) -> _AttrKey:
        if isinstance(value, _AttrKey):
            return value

        if isinstance(value, BoundedAttrRep) and value.extension:
            return _ExtensionAttrKey(
                schema=str(value.schema),
                attr=str(value.attr),
                sub_attr=str(value.sub_attr) if value.is_sub_attr else None,
            )

        if isinstance(value, AttrRep):
            return _AttrKey(
                attr=str(value.attr),
                sub_attr=str(value.sub_attr) if value.is_sub_attr else None,
            )

        if isinstance(value, str):
            return _AttrKey(attr=value, sub_attr=None)

        raise TypeError(f"unsupported key type {type(value).__name__!r}")

    def to_dict(self) -> dict[str, Any]:
        """
        Converts the `ScimData` to ordinary dictionary.
        """
        output: dict[str, Any] = {}
        for key, value in self._data.items():
            if isinstance(value, ScimData):
                output[key] = value.to_dict()
            elif isinstance(value, list):
                output[key] = [
                    item.to_dict() if isinstance(item, ScimData) else item for item in value
                ]
            else:
                output[key] = value
        return output

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Mapping) and not isinstance(other, ScimData):
            other = ScimData(other)

        if not isinstance(other, ScimData):
            return False

        if len(self) != len(other):
            return False

        for key, value in self._data.items():
            if other.get(key) != value:
                return False

        return True
