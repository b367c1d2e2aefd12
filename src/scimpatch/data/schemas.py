from typing import Optional

from scimpatch.data.attrs import (
    Attribute,
    AttributeMutability,
    BoundedAttrs,
    Complex,
    DateTime,
    String,
    UriReference,
)
from scimpatch.data.identifiers import SchemaUri

_COMMON_ATTRS: list[Attribute] = [
    UriReference(
        name="schemas",
        required=True,
        multi_valued=True,
        mutability=AttributeMutability.READ_ONLY,
    ),
    String(
        name="id",
        required=True,
        case_exact=True,
        mutability=AttributeMutability.READ_ONLY,
    ),
    String(
        name="externalId",
        case_exact=True,
    ),
    Complex(
        name="meta",
        mutability=AttributeMutability.READ_ONLY,
        sub_attributes=[
            String(name="resourceType", case_exact=True, mutability=AttributeMutability.READ_ONLY),
            DateTime(name="created", mutability=AttributeMutability.READ_ONLY),
            DateTime(name="lastModified", mutability=AttributeMutability.READ_ONLY),
            UriReference(name="location", mutability=AttributeMutability.READ_ONLY),
            String(name="version", case_exact=True, mutability=AttributeMutability.READ_ONLY),
        ],
    ),
]


class SchemaExtension:
    """
    Base class for all schema extensions.

    To define the schema extension, besides `base_attrs`, one must specify `schema` and `name`
    class attributes. Optionally, `description` can be provided.

    Examples:
        >>> class MyResourceSchemaExtension(SchemaExtension):
        >>>     schema = "urn:my:resource:extension"
        >>>     name = "ResourceExtension"
        >>>     description = "The best resource extension."
        >>>     base_attrs = [...]
    """

    schema: str
    name: str
    description: str = ""
    base_attrs: list[Attribute] = []

    def __init__(self):
        self.schema = SchemaUri(self.schema)
        self._attrs = BoundedAttrs(schema=self.schema, attrs=self.base_attrs, extension=True)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.schema})"

    @property
    def attrs(self) -> BoundedAttrs:
        return self._attrs


class ResourceSchema:
    """
    Base class for all resource schemas. Attributes: `schemas`, `meta`, `id`, and `externalId`
    are already defined in the schema.

    To define the schema, besides `base_attrs`, one must specify `schema` and `name` class
    attributes. Optional class attributes are `plural_name`, `endpoint`, and `description`.

    Examples:
        >>> class MyResourceSchema(ResourceSchema):
        >>>     schema = "urn:my:resource"
        >>>     name = "Resource"
        >>>     plural_name = "Resources"
        >>>     endpoint = "/Resources"
        >>>     description = "The best resource."
        >>>     base_attrs = [...]
    """

    schema: str
    name: str
    plural_name: str
    endpoint: Optional[str] = None
    description: str = ""
    base_attrs: list[Attribute] = []

    def __init__(self):
        self.schema = SchemaUri(self.schema)
        self.plural_name = getattr(self, "plural_name", self.name)
        self.endpoint = self.endpoint or f"/{self.plural_name}"
        self._attrs = BoundedAttrs(schema=self.schema, attrs=_COMMON_ATTRS + self.base_attrs)
        self._extensions: dict[SchemaUri, SchemaExtension] = {}
        self._required_extensions: set[SchemaUri] = set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.schema})"

    @property
    def attrs(self) -> BoundedAttrs:
        """
        Attributes of the schema, including attributes of the extensions.
        """
        return self._attrs

    @property
    def schemas(self) -> list[SchemaUri]:
        """
        Schema URIs by which the schema is identified. Includes schema extension URIs.
        """
        return [SchemaUri(self.schema)] + list(self._extensions)

    @property
    def extensions(self) -> dict[SchemaUri, bool]:
        """
        Map of schema extension URIs and flags indicating whether they are required.
        """
        return {uri: uri in self._required_extensions for uri in self._extensions}

    def extend(self, extension: SchemaExtension, required: bool = False) -> None:
        """
        Extends the base schema with the provided schema `extension`. Extension attributes
        become resolvable through `ResourceSchema.attrs`.

        Raises:
            ValueError: If the extension is already part of the schema.
        """
        if extension.schema in self.schemas:
            raise ValueError(f"schema {extension.schema!r} already in {self.name!r} resource")
        self._extensions[SchemaUri(extension.schema)] = extension
        if required:
            self._required_extensions.add(SchemaUri(extension.schema))
        self._attrs.extend(extension.attrs)

    def get_extension(self, value: str) -> Optional[SchemaExtension]:
        """
        Returns the schema extension identified exactly by the provided URI (case-insensitive),
        or `None`, if it is not an extension of the schema.
        """
        try:
            return self._extensions.get(SchemaUri(value))
        except ValueError:
            return None
