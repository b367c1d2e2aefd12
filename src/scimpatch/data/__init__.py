from scimpatch.data.attrs import (
    Attribute,
    AttributeMutability,
    Attrs,
    Binary,
    Boolean,
    BoundedAttrs,
    Complex,
    DateTime,
    Decimal,
    ExternalReference,
    Integer,
    ScimReference,
    SCIMType,
    String,
    UriReference,
)
from scimpatch.data.filter import Filter
from scimpatch.data.identifiers import (
    AttrName,
    AttrRep,
    AttrRepFactory,
    BoundedAttrRep,
    SchemaUri,
)
from scimpatch.data.patch_path import PatchPath
from scimpatch.data.schemas import ResourceSchema, SchemaExtension
from scimpatch.data.scim_data import Missing, ScimData

__all__ = [
    "AttrName",
    "SchemaUri",
    "AttrRep",
    "BoundedAttrRep",
    "AttrRepFactory",
    "Attribute",
    "AttributeMutability",
    "Attrs",
    "Binary",
    "Boolean",
    "BoundedAttrs",
    "Complex",
    "DateTime",
    "Decimal",
    "ExternalReference",
    "Integer",
    "ScimReference",
    "SCIMType",
    "String",
    "UriReference",
    "ResourceSchema",
    "SchemaExtension",
    "Filter",
    "PatchPath",
    "ScimData",
    "Missing",
]
