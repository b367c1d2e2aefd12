import re
from typing import Any, Optional, Union, cast

_ATTR_NAME = re.compile(r"([a-zA-Z][\w$-]*|\$ref)")
_URI_PREFIX = re.compile(r"(?:[\w.-]+:)*")
_ATTR_REP = re.compile(
    rf"({_URI_PREFIX.pattern})?({_ATTR_NAME.pattern}(\.([a-zA-Z][\w$-]*|\$ref))?)"
)


class AttrName(str):
    """
    Attribute name, conforming attribute name notation from RFC-7643.
    Attribute names are case-insensitive.

    Raises:
        ValueError: If the provided value is not valid attribute name.
    """

    def __repr__(self):
        return f"AttrName({self})"

    def __new__(cls, value: str) -> "AttrName":
        if not isinstance(value, AttrName) and not _ATTR_NAME.fullmatch(value):
            raise ValueError(f"{value!r} is not valid attr name")
        return cast(AttrName, str.__new__(cls, value))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, str):
            other = other.lower()
        return self.lower() == other

    def __hash__(self):
        return hash(self.lower())


class SchemaUri(str):
    """
    Schema URI. Schema URIs are case-insensitive.

    Raises:
        ValueError: If the provided value is not valid schema URI.
    """

    def __new__(cls, value: str) -> "SchemaUri":
        if not isinstance(value, SchemaUri) and not _URI_PREFIX.fullmatch(value + ":"):
            raise ValueError(f"{value!r} is not a valid schema URI")
        return cast(SchemaUri, str.__new__(cls, value))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, str):
            other = other.lower()
        return self.lower() == other

    def __hash__(self):
        return hash(self.lower())


class AttrRep:
    """
    Representation of an attribute or sub-attribute that is not associated with any schema.
    """

    def __init__(self, attr: str, sub_attr: Optional[str] = None):
        attr = AttrName(attr)
        str_: str = attr
        if sub_attr is not None:
            sub_attr = AttrName(sub_attr)
            str_ += "." + sub_attr

        self._attr = attr
        self._sub_attr = sub_attr
        self._str = str_

    def __str__(self) -> str:
        return self._str

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, AttrRep):
            return False

        return bool(self._attr == other._attr and self._sub_attr == other._sub_attr)

    def __hash__(self):
        return hash((self._attr, self._sub_attr))

    @property
    def attr(self) -> AttrName:
        return self._attr

    @property
    def sub_attr(self) -> AttrName:
        """
        Raises:
            AttributeError: If the representation points to top-level attribute.
        """
        if self._sub_attr is None:
            raise AttributeError(f"{self!r} has no sub-attribute")
        return self._sub_attr

    @property
    def is_sub_attr(self) -> bool:
        return self._sub_attr is not None

    @property
    def parent(self) -> "AttrRep":
        """
        Representation of the top-level attribute. Returns itself for top-level attributes.
        """
        if self._sub_attr is None:
            return self
        return AttrRep(attr=self._attr)


class BoundedAttrRep(AttrRep):
    """
    Representation of an attribute or sub-attribute that belongs to the specific schema.
    The `extension` flag tells whether the schema is a schema extension, and so whether
    the attribute value is kept in the extension namespace of the resource.
    """

    def __init__(
        self,
        schema: str,
        attr: str,
        sub_attr: Optional[str] = None,
        extension: bool = False,
    ):
        super().__init__(attr, sub_attr)
        schema = SchemaUri(schema)
        self._str = f"{schema}:{self._str}"
        self._schema = schema
        self._extension = extension

    def __eq__(self, other: Any) -> bool:
        parent_equals = super().__eq__(other)
        if not isinstance(other, BoundedAttrRep):
            return parent_equals

        return parent_equals and self._schema == other._schema

    def __hash__(self):
        return hash((self._attr, self._schema, self._sub_attr))

    @property
    def schema(self) -> SchemaUri:
        return self._schema

    @property
    def extension(self) -> bool:
        return self._extension

    @property
    def parent(self) -> "BoundedAttrRep":
        if self._sub_attr is None:
            return self
        return BoundedAttrRep(schema=self._schema, attr=self._attr, extension=self._extension)

    def with_sub_attr(self, sub_attr: str) -> "BoundedAttrRep":
        return BoundedAttrRep(
            schema=self._schema,
            attr=self._attr,
            sub_attr=sub_attr,
            extension=self._extension,
        )


class AttrRepFactory:
    """
    Deserializes string-based attribute representations to `AttrRep` or `BoundedAttrRep`.
    """

    @classmethod
    def deserialize(cls, value: str) -> Union[AttrRep, BoundedAttrRep]:
        """
        Deserializes the provided `value` to `AttrRep` or `BoundedAttrRep`. Whether bounded
        representation points to a schema extension can not be determined here, it is
        resolved by the schema the representation is looked up in.

        Raises:
            ValueError: If the provided `value` is not valid attribute representation.

        Examples:
            >>> AttrRepFactory.deserialize("name.formatted")
            AttrRep(name.formatted)
            >>> AttrRepFactory.deserialize(
            >>>     "urn:ietf:params:scim:schemas:core:2.0:Group:members.type"
            >>> )
            BoundedAttrRep(urn:ietf:params:scim:schemas:core:2.0:Group:members.type)
        """
        if isinstance(value, AttrName):
            return AttrRep(attr=value)

        match = _ATTR_REP.fullmatch(value) if isinstance(value, str) else None
        if match is None:
            raise ValueError(f"{value!r} is not valid attribute representation")

        schema, attr = match.group(1), match.group(2)
        schema = schema[:-1] if schema else ""
        if "." in attr:
            attr, sub_attr = attr.split(".")
        else:
            attr, sub_attr = attr, None
        if schema:
            return BoundedAttrRep(schema=schema, attr=attr, sub_attr=sub_attr)
        return AttrRep(attr=attr, sub_attr=sub_attr)
