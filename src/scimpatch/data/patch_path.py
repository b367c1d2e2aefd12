from copy import copy
from typing import TYPE_CHECKING, Any, Mapping, Optional

from scimpatch.data.attrs import Complex
from scimpatch.data.filter import Filter
from scimpatch.data.identifiers import AttrName, AttrRep, AttrRepFactory, BoundedAttrRep
from scimpatch.data.operator import ComplexAttributeOperator
from scimpatch.data.scim_data import ScimData
from scimpatch.data.utils import decode_placeholders, encode_strings

if TYPE_CHECKING:
    from scimpatch.data.schemas import ResourceSchema


class PatchPath:
    """
    Target modification path, used in PATCH requests. Supports path syntax, as specified in
    RFC-7644, section 3.5.2.

    Args:
        attr_rep: The representation of the attribute being targeted. Must not be
            a sub-attribute representation.
        sub_attr_name: The optional sub-attribute being targeted.
        filter_: Value selection filter, used for multi-valued attributes. The only supported
            operator is `ComplexAttributeOperator`, configured for the same `attr_rep`.

    Raises:
        ValueError: When `attr_rep` is a sub-attribute representation, or the filter is
            not a `ComplexAttributeOperator` for `attr_rep`.
    """

    def __init__(
        self,
        attr_rep: AttrRep,
        sub_attr_name: Optional[str] = None,
        filter_: Optional[Filter[ComplexAttributeOperator]] = None,
    ):
        if attr_rep.is_sub_attr:
            raise ValueError("'attr_rep' must not be a sub attribute")

        if filter_ is not None:
            if not isinstance(filter_.operator, ComplexAttributeOperator):
                raise ValueError("'filter_' must consist of 'ComplexAttributeOperator'")
            if filter_.operator.attr_rep != attr_rep:
                raise ValueError(
                    f"provided filter is configured for {filter_.operator.attr_rep!r}, "
                    f"but {attr_rep!r} is required"
                )

        self._attr_rep = attr_rep
        self._sub_attr_name = AttrName(sub_attr_name) if sub_attr_name is not None else None
        self._filter = filter_

    @property
    def attr_rep(self) -> AttrRep:
        return self._attr_rep

    @property
    def sub_attr_name(self) -> Optional[AttrName]:
        return self._sub_attr_name

    @property
    def filter(self) -> Optional[Filter[ComplexAttributeOperator]]:
        return self._filter

    @property
    def has_filter(self) -> bool:
        return self._filter is not None

    @property
    def target_rep(self) -> AttrRep:
        """
        Representation of the targeted attribute or sub-attribute, without the filter.
        """
        if self._sub_attr_name is None:
            return self._attr_rep
        if isinstance(self._attr_rep, BoundedAttrRep):
            return self._attr_rep.with_sub_attr(self._sub_attr_name)
        return AttrRep(attr=self._attr_rep.attr, sub_attr=self._sub_attr_name)

    @classmethod
    def deserialize(cls, path_exp: str) -> "PatchPath":
        """
        Deserializes the provided path expression into a `PatchPath`.

        Raises:
            ValueError: When `path_exp` is not a valid path expression.

        Examples:
            >>> PatchPath.deserialize('emails[type eq "work"].value')
            PatchPath(emails[type eq "work"].value)
        """
        try:
            return cls._deserialize(path_exp)
        except (AttributeError, TypeError, ValueError):
            raise ValueError(f"invalid path expression {path_exp!r}")

    @classmethod
    def _deserialize(cls, path_exp: str) -> "PatchPath":
        path_exp, placeholders = encode_strings(path_exp.strip())
        if path_exp.count("[") > 1 or path_exp.count("]") > 1:
            raise ValueError("only one value selection filter is allowed")

        if "[" in path_exp and "]" in path_exp:
            if path_exp.index("[") > path_exp.index("]"):
                raise ValueError("unbalanced brackets")
            return cls._deserialize_filtered_path(path_exp, placeholders)

        if "[" in path_exp or "]" in path_exp:
            raise ValueError("unbalanced brackets")

        attr_rep = AttrRepFactory.deserialize(decode_placeholders(path_exp, placeholders))
        if not attr_rep.is_sub_attr:
            return cls(attr_rep=attr_rep)
        return cls(attr_rep=attr_rep.parent, sub_attr_name=attr_rep.sub_attr)

    @classmethod
    def _deserialize_filtered_path(
        cls, path_exp: str, placeholders: dict[str, Any]
    ) -> "PatchPath":
        filter_exp = decode_placeholders(path_exp[: path_exp.index("]") + 1], placeholders)
        filter_ = Filter.deserialize(filter_exp)
        if not isinstance(filter_.operator, ComplexAttributeOperator):
            raise ValueError("path filter must be a value selection filter")

        sub_attr_name = None
        sub_attr_exp = path_exp[path_exp.index("]") + 1 :]
        if sub_attr_exp:
            if sub_attr_exp.startswith("."):
                sub_attr_exp = sub_attr_exp[1:]
            sub_attr_name = AttrName(decode_placeholders(sub_attr_exp, placeholders))

        return cls(
            attr_rep=filter_.operator.attr_rep,
            sub_attr_name=sub_attr_name,
            filter_=filter_,
        )

    def serialize(self) -> str:
        """
        Serializes `PatchPath` to string expression.
        """
        if self._filter is not None:
            serialized = self._filter.serialize()
            if self._sub_attr_name:
                serialized += f".{self._sub_attr_name}"
            return serialized
        return str(self.target_rep)

    def __repr__(self) -> str:
        return f"PatchPath({self.serialize()})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, PatchPath):
            return False

        return bool(
            self._attr_rep == other._attr_rep
            and self._filter == other._filter
            and self._sub_attr_name == other._sub_attr_name
        )

    def __call__(self, value: Any, schema: "ResourceSchema") -> bool:
        """
        Returns the flag indicating whether the provided item of the multi-valued attribute
        matches the value selection filter.

        Raises:
            ValueError: When provided `schema` does not define the attribute targeted by the path.
            AttributeError: When the path does not have value selection filter.

        Examples:
            >>> path = PatchPath.deserialize("emails[type eq 'work']")
            >>> path({"type": "work", "value": "user@example.com"}, UserSchema())
            True
            >>> path = PatchPath.deserialize("simpleAttr[value ge 42]")
            >>> path(42, schema)  # assuming 'schema' defines multi-valued 'simpleAttr'
            True
        """
        attr = schema.attrs.get(self._attr_rep)
        if attr is None:
            raise ValueError(f"path does not target any attribute for {schema!r} schema")

        if self._filter is None:
            raise AttributeError("path has no value selection filter")

        sub_operator = self._filter.operator.sub_operator
        if isinstance(attr, Complex):
            if not isinstance(value, Mapping):
                return False
            return sub_operator.match(ScimData(value), attr)

        # simple values are matched as if they were 'value' sub-attribute of complex attribute
        value_attr = copy(attr)
        value_attr._name = AttrName("value")
        value_attr._parent = None
        return sub_operator.match(
            ScimData({"value": [value]}),
            Complex(name=self._attr_rep.attr, sub_attributes=[value_attr]),
        )
