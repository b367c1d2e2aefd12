from typing import Any, Mapping, Optional

import structlog

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Attribute, BoundedAttrs, Complex
from scimpatch.data.identifiers import BoundedAttrRep
from scimpatch.data.schemas import ResourceSchema, SchemaExtension
from scimpatch.data.scim_data import ScimData
from scimpatch.error import InvalidPath, InvalidValue
from scimpatch.patch.classifier import ClassifiedOperation, OperationKind, get_kind
from scimpatch.patch.operation import PatchOperation, PatchOperationType
from scimpatch.patch.utils import is_empty, load_object, to_dict

logger = structlog.get_logger(__name__)

_IGNORED_KEYS = ("schemas", "meta")


def _is_present(resource: ScimData, attr_rep: BoundedAttrRep) -> bool:
    value = resource.get(attr_rep)
    if isinstance(value, list):
        return any(not is_empty(item) for item in value)
    return not is_empty(value)


class PatchDecomposer:
    """
    Splits the operation without path, which carries the resource fragment, into classified
    operations, one per attribute (or sub-attribute) present in the fragment. `null` values
    are handled as removal of the attribute, and so are empty extension objects.

    Raises:
        InvalidValue: If the operation does not carry exactly one object, or the values
            in the fragment do not fit the attributes.
        InvalidPath: If the fragment contains unknown attributes and unknown attributes
            are not ignored.
    """

    def __init__(self, schema: ResourceSchema, config: PatchConfig):
        self._schema = schema
        self._config = config

    def decompose(
        self, operation: PatchOperation, resource: ScimData
    ) -> list[ClassifiedOperation]:
        if operation.path is not None:
            raise ValueError("only operations without path can be decomposed")

        if len(operation.values) != 1:
            raise InvalidValue(
                "exactly one resource object is expected for operation without path"
            )
        fragment = load_object(operation.values[0])
        if fragment is None:
            raise InvalidValue("value for operation without path must be an object")

        operations: list[ClassifiedOperation] = []
        for key, value in fragment.items():
            if key.lower() in _IGNORED_KEYS:
                continue
            extension = self._schema.get_extension(key)
            if extension is not None:
                operations.extend(
                    self._decompose_extension(operation.op, extension, value, resource)
                )
                continue
            operations.extend(
                self._decompose_attr(operation.op, key, value, self._schema.attrs, resource)
            )
        return operations

    def _decompose_extension(
        self,
        op: PatchOperationType,
        extension: SchemaExtension,
        value: Any,
        resource: ScimData,
    ) -> list[ClassifiedOperation]:
        uri = str(extension.schema)
        if value is None or value == {}:
            if is_empty(resource.get(uri)):
                return []
            return [
                ClassifiedOperation(
                    kind=OperationKind.EXTENSION_REF,
                    op=PatchOperationType.REMOVE,
                    extension=extension,
                )
            ]

        loaded = load_object(value)
        if loaded is None:
            raise InvalidValue(f"value for extension {uri!r} must be an object")

        operations = []
        for key, item in loaded.items():
            operations.extend(self._decompose_attr(op, key, item, extension.attrs, resource))
        return operations

    def _decompose_attr(
        self,
        op: PatchOperationType,
        key: str,
        value: Any,
        attrs: BoundedAttrs,
        resource: ScimData,
    ) -> list[ClassifiedOperation]:
        resolved = attrs.resolve(key)
        if resolved is None:
            return self._unknown(key)

        attr_rep, attr = resolved
        if attr.read_only:
            logger.debug("read_only_attribute_ignored", attribute=str(attr_rep))
            return []

        if attr_rep.is_sub_attr:
            parent = attr.parent
            assert parent is not None
            if parent.multi_valued:
                return self._decompose_multivalued_sub_attr(
                    op, attr_rep, parent, attr, value, resource
                )
            return self._decompose_sub_attr(op, attr_rep.parent, parent, attr, value, resource)

        if value is None:
            return self._remove(attr_rep, attr, None, resource)

        if isinstance(attr, Complex):
            if attr.multi_valued:
                return [self._multivalued_complex(op, attr_rep, attr, value)]
            loaded = load_object(value)
            if loaded is None:
                raise InvalidValue(
                    f"value for complex attribute {str(attr_rep)!r} must be an object"
                )
            operations = []
            for sub_key, sub_value in loaded.items():
                sub_attr = attr.attrs.get(sub_key)
                if sub_attr is None:
                    operations.extend(self._unknown(f"{attr_rep}.{sub_key}"))
                    continue
                if sub_attr.read_only:
                    logger.debug(
                        "read_only_attribute_ignored",
                        attribute=str(attr_rep.with_sub_attr(sub_attr.name)),
                    )
                    continue
                operations.extend(
                    self._decompose_sub_attr(op, attr_rep, attr, sub_attr, sub_value, resource)
                )
            return operations

        if attr.multi_valued:
            values = value if isinstance(value, list) else [value]
            self._check_simple(values, attr_rep)
            return [self._build(op, attr_rep, attr, None, values)]

        self._check_simple([value], attr_rep)
        return [self._build(op, attr_rep, attr, None, [value])]

    def _decompose_sub_attr(
        self,
        op: PatchOperationType,
        attr_rep: BoundedAttrRep,
        attr: Complex,
        sub_attr: Attribute,
        value: Any,
        resource: ScimData,
    ) -> list[ClassifiedOperation]:
        if value is None:
            return self._remove(attr_rep, attr, sub_attr, resource)
        values = value if sub_attr.multi_valued and isinstance(value, list) else [value]
        self._check_simple(values, attr_rep.with_sub_attr(sub_attr.name))
        return [self._build(op, attr_rep, attr, sub_attr, values)]

    def _decompose_multivalued_sub_attr(
        self,
        op: PatchOperationType,
        sub_attr_rep: BoundedAttrRep,
        attr: Complex,
        sub_attr: Attribute,
        value: Any,
        resource: ScimData,
    ) -> list[ClassifiedOperation]:
        attr_rep = sub_attr_rep.parent
        if value is None:
            if not _is_present(resource, sub_attr_rep):
                return []
            return [self._build(PatchOperationType.REMOVE, attr_rep, attr, sub_attr, [])]
        self._check_simple([value], sub_attr_rep)
        return [self._build(op, attr_rep, attr, None, [{str(sub_attr.name): value}])]

    def _multivalued_complex(
        self, op: PatchOperationType, attr_rep: BoundedAttrRep, attr: Complex, value: Any
    ) -> ClassifiedOperation:
        items = []
        for item in value if isinstance(value, list) else [value]:
            loaded = load_object(item)
            if loaded is None:
                raise InvalidValue(
                    f"items of complex attribute {str(attr_rep)!r} must be objects"
                )
            items.append(self._strip(loaded, attr, attr_rep))
        return self._build(op, attr_rep, attr, None, [item for item in items if item])

    @staticmethod
    def _strip(value: dict[str, Any], attr: Complex, attr_rep: BoundedAttrRep) -> dict[str, Any]:
        stripped = {}
        for key, item in value.items():
            sub_attr = attr.attrs.get(key)
            if sub_attr is None or sub_attr.read_only:
                logger.debug("sub_attribute_stripped", attribute=str(attr_rep), sub_attribute=key)
                continue
            stripped[key] = to_dict(item) if isinstance(item, Mapping) else item
        return stripped

    def _remove(
        self,
        attr_rep: BoundedAttrRep,
        attr: Attribute,
        sub_attr: Optional[Attribute],
        resource: ScimData,
    ) -> list[ClassifiedOperation]:
        target_rep = attr_rep if sub_attr is None else attr_rep.with_sub_attr(sub_attr.name)
        if not _is_present(resource, target_rep):
            return []
        return [self._build(PatchOperationType.REMOVE, attr_rep, attr, sub_attr, [])]

    @staticmethod
    def _check_simple(values: list[Any], attr_rep: BoundedAttrRep) -> None:
        for value in values:
            if isinstance(value, (Mapping, list)):
                raise InvalidValue(f"value for {str(attr_rep)!r} must be a simple value")

    @staticmethod
    def _build(
        op: PatchOperationType,
        attr_rep: BoundedAttrRep,
        attr: Attribute,
        sub_attr: Optional[Attribute],
        values: list[Any],
    ) -> ClassifiedOperation:
        return ClassifiedOperation(
            kind=get_kind(attr, sub_attr),
            op=op,
            attr_rep=attr_rep,
            attr=attr,
            sub_attr=sub_attr,
            values=values,
        )

    def _unknown(self, key: str) -> list[ClassifiedOperation]:
        if not self._config.ignore_unknown_attributes:
            raise InvalidPath(f"unknown attribute {key!r}")
        logger.debug("unknown_attribute_ignored", attribute=key)
        return []
