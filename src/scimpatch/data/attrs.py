import abc
from collections import defaultdict
from enum import Enum
from typing import (
    Any,
    Collection,
    Iterable,
    Iterator,
    Optional,
    Union,
    final,
)

import precis_i18n.profile
from precis_i18n import get_profile

from scimpatch.data.identifiers import (
    AttrName,
    AttrRep,
    AttrRepFactory,
    BoundedAttrRep,
    SchemaUri,
)


class SCIMType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "dateTime"
    REFERENCE = "reference"
    COMPLEX = "complex"
    BINARY = "binary"


class AttributeMutability(str, Enum):
    READ_WRITE = "readWrite"
    READ_ONLY = "readOnly"
    WRITE_ONLY = "writeOnly"
    IMMUTABLE = "immutable"


class Attribute(abc.ABC):
    """
    Base class for all attributes.

    Args:
        name: Name of the attribute. Must be valid attribute name, according to RFC-7643.
        description: Description of the attribute.
        required: Specifies if attribute is required, as per RFC-7643.
        multi_valued: Specifies if attribute is multivalued, as per RFC-7643.
        canonical_values: Specifies canonical values for the attribute, as per RFC-7643.
        mutability: Specifies attribute's mutability, as per RFC-7643.
    """

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        required: bool = False,
        multi_valued: bool = False,
        canonical_values: Optional[Collection] = None,
        mutability: AttributeMutability = AttributeMutability.READ_WRITE,
    ):
        self._name = AttrName(name)
        self._description = description
        self._required = required
        self._multi_valued = multi_valued
        self._canonical_values = list(canonical_values or [])
        self._mutability = AttributeMutability(mutability)
        self._parent: Optional["Complex"] = None

    @classmethod
    @abc.abstractmethod
    def scim_type(cls) -> SCIMType:
        """Returns type of the attribute, as defined in RFC-7643."""

    @property
    def name(self) -> AttrName:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def required(self) -> bool:
        return self._required

    @property
    def multi_valued(self) -> bool:
        return self._multi_valued

    @property
    def canonical_values(self) -> list:
        return self._canonical_values

    @property
    def mutability(self) -> AttributeMutability:
        return self._mutability

    @property
    def parent(self) -> Optional["Complex"]:
        """
        Complex attribute the attribute is a sub-attribute of. `None` for top-level attributes.
        """
        return self._parent

    @property
    def read_only(self) -> bool:
        """
        Whether the attribute can not be modified by clients, either because it is read-only
        itself or because its parent is.
        """
        if self._mutability == AttributeMutability.READ_ONLY:
            return True
        return self._parent is not None and self._parent.read_only

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"


class AttributeWithCaseExact(Attribute, abc.ABC):
    """
    Base class for attributes which values can be compared case-sensitively.
    """

    def __init__(self, name: str, *, case_exact: bool = False, **kwargs: Any):
        super().__init__(name=name, **kwargs)
        self._case_exact = case_exact

    @property
    def case_exact(self) -> bool:
        return self._case_exact


class Boolean(Attribute):
    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.BOOLEAN


class Decimal(Attribute):
    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.DECIMAL


class Integer(Attribute):
    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.INTEGER


@final
class String(AttributeWithCaseExact):
    """
    Represents **string** attribute, as specified in RFC-7643.

    Args:
        name: The name of the attribute
        precis: PRECIS profile that should be applied for the string attribute, when
            comparing values. By default, **OpaqueString** profile is used
        kwargs: The same keyword arguments base classes receive
    """

    def __init__(
        self,
        name: str,
        *,
        precis: precis_i18n.profile.Profile = get_profile("OpaqueString"),
        **kwargs: Any,
    ):
        super().__init__(name=name, **kwargs)
        self._precis = precis

    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.STRING

    @property
    def precis(self) -> precis_i18n.profile.Profile:
        return self._precis


class Binary(AttributeWithCaseExact):
    def __init__(self, name: str, **kwargs: Any):
        kwargs["case_exact"] = True
        super().__init__(name=name, **kwargs)

    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.BINARY


class DateTime(Attribute):
    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.DATETIME


class Reference(AttributeWithCaseExact, abc.ABC):
    def __init__(self, name: str, *, reference_types: Iterable[str], **kwargs: Any):
        kwargs["case_exact"] = True
        super().__init__(name=name, **kwargs)
        self._reference_types = list(reference_types)

    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.REFERENCE

    @property
    def reference_types(self) -> list[str]:
        return self._reference_types


class ExternalReference(Reference):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__(name=name, reference_types=["external"], **kwargs)


class UriReference(Reference):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__(name=name, reference_types=["uri"], **kwargs)


class ScimReference(Reference):
    pass


class Complex(Attribute):
    """
    Represents **complex** attribute, as specified in RFC-7643.

    Args:
        name: Name of the attribute.
        sub_attributes: Complex sub-attributes. All attributes but `Complex`
            can be sub-attributes. If not specified, and the attribute is multivalued,
            the default sub-attributes are used, as specified in
            [RFC-7643, section 2.4](https://www.rfc-editor.org/rfc/rfc7643#section-2.4).
        kwargs: The same keyword arguments the base class receives
    """

    def __init__(
        self,
        name: str,
        *,
        sub_attributes: Optional[Collection[Attribute]] = None,
        **kwargs: Any,
    ):
        for attr in sub_attributes or []:
            if isinstance(attr, Complex):
                raise TypeError("complex attributes can not contain complex sub-attributes")
            if attr.parent is not None:
                raise ValueError(f"{attr!r} is already a sub-attribute of {attr.parent!r}")

        super().__init__(name=name, **kwargs)
        default_sub_attrs = (
            [
                String("value"),
                String("display", mutability=AttributeMutability.IMMUTABLE),
                String("type"),
                Boolean("primary"),
                UriReference("$ref"),
            ]
            if self._multi_valued
            else []
        )
        self._sub_attributes = Attrs(sub_attributes or default_sub_attrs)
        for _, sub_attr in self._sub_attributes:
            sub_attr._parent = self

    @classmethod
    def scim_type(cls) -> SCIMType:
        return SCIMType.COMPLEX

    @property
    def attrs(self) -> "Attrs":
        """
        Complex sub-attributes.
        """
        return self._sub_attributes


class Attrs:
    """
    Represents iterable collection of unbounded attributes.

    Examples:
        >>> attrs = Attrs([String("myString"), Integer("myInteger")])
        >>> for attr_name, attr in attrs:
        >>>     print(attr_name, attr)
    """

    def __init__(self, attrs: Optional[Iterable[Attribute]] = None):
        self._attrs = {attr.name: attr for attr in (attrs or [])}

    def __iter__(self) -> Iterator[tuple[AttrName, Attribute]]:
        return iter(self._attrs.items())

    def get(self, attr_name: Union[str, AttrRep]) -> Optional[Attribute]:
        """
        Returns an attribute by its name. Attribute names are case-insensitive.
        Returns `None` if the name is not known or is not a valid attribute name.
        """
        if isinstance(attr_name, AttrRep):
            attr_name = attr_name.attr
        try:
            return self._attrs.get(AttrName(attr_name))
        except ValueError:
            return None


class BoundedAttrs:
    """
    Represents iterable collection of attributes bounded to a specific schema. Attributes
    from schema extensions can be attached with `BoundedAttrs.extend`, and are then resolvable
    through the base schema.

    Args:
        schema: A SCIM schema attributes belong to.
        attrs: Attributes bound to the schema.
        extension: Whether the schema is a schema extension.
    """

    def __init__(
        self,
        schema: SchemaUri,
        attrs: Optional[Iterable[Attribute]] = None,
        extension: bool = False,
    ):
        self._schema = schema
        self._extension = extension
        self._extensions: dict[SchemaUri, BoundedAttrs] = {}
        self._attrs: dict[BoundedAttrRep, Attribute] = {}
        self._bounded_complex_sub_attrs: dict[BoundedAttrRep, dict[BoundedAttrRep, Attribute]] = (
            defaultdict(dict)
        )

        for attr in attrs or []:
            attr_rep = BoundedAttrRep(schema=schema, attr=attr.name, extension=extension)
            self._attrs[attr_rep] = attr
            if isinstance(attr, Complex):
                self._bounded_complex_sub_attrs[attr_rep] = {
                    attr_rep.with_sub_attr(sub_attr_name): sub_attr
                    for sub_attr_name, sub_attr in attr.attrs
                }

    def __iter__(self) -> Iterator[tuple[BoundedAttrRep, Attribute]]:
        return iter(self._attrs.items())

    @property
    def schema(self) -> SchemaUri:
        return self._schema

    @property
    def extensions(self) -> dict[SchemaUri, "BoundedAttrs"]:
        return self._extensions

    def extend(self, attrs: "BoundedAttrs") -> None:
        """
        Attaches attributes of a schema extension.
        """
        self._extensions[attrs.schema] = attrs

    def resolve(self, attr_rep: Union[str, AttrRep]) -> Optional[tuple[BoundedAttrRep, Attribute]]:
        """
        Returns the bounded representation of the attribute, together with the attribute
        itself, given the attribute name or (bounded) representation. The returned
        representation has original attribute names and knows whether the attribute
        comes from a schema extension.

        If unbounded representation is provided, the base schema is checked first, then
        the extensions, and the first matching result is returned.

        Returns `None` if no attribute is found.
        """
        if isinstance(attr_rep, str):
            try:
                attr_rep = AttrRepFactory.deserialize(attr_rep)
            except ValueError:
                return None

        if isinstance(attr_rep, BoundedAttrRep):
            if attr_rep.schema == self._schema:
                return self._resolve_own(attr_rep)
            extension = self._extensions.get(attr_rep.schema)
            if extension is None:
                return None
            return extension._resolve_own(attr_rep)

        if resolved := self._resolve_own(attr_rep):
            return resolved

        for attrs in self._extensions.values():
            if resolved := attrs._resolve_own(attr_rep):
                return resolved
        return None

    def _resolve_own(self, attr_rep: AttrRep) -> Optional[tuple[BoundedAttrRep, Attribute]]:
        top_level_rep = BoundedAttrRep(
            schema=self._schema, attr=attr_rep.attr, extension=self._extension
        )
        attr = self._attrs.get(top_level_rep)
        if attr is None:
            return None
        top_level_rep = BoundedAttrRep(
            schema=self._schema, attr=attr.name, extension=self._extension
        )
        if not attr_rep.is_sub_attr:
            return top_level_rep, attr

        sub_attr = self._bounded_complex_sub_attrs[top_level_rep].get(
            top_level_rep.with_sub_attr(attr_rep.sub_attr)
        )
        if sub_attr is None:
            return None
        return top_level_rep.with_sub_attr(sub_attr.name), sub_attr

    def get(self, attr_rep: Union[str, AttrRep]) -> Optional[Attribute]:
        """
        Returns an attribute, given its name or (bounded) representation,
        or `None` if not found.
        """
        resolved = self.resolve(attr_rep)
        if resolved is None:
            return None
        return resolved[1]
