from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NoReturn, Optional, Union

import structlog

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Attribute, Attrs, BoundedAttrs, Complex
from scimpatch.data.identifiers import BoundedAttrRep
from scimpatch.data.patch_path import PatchPath
from scimpatch.data.schemas import ResourceSchema, SchemaExtension
from scimpatch.error import IgnoreOperation, InvalidPath, InvalidValue
from scimpatch.patch.operation import PatchOperation, PatchOperationType
from scimpatch.patch.utils import load_object

logger = structlog.get_logger(__name__)


class OperationKind(str, Enum):
    EXTENSION_REF = "extensionRef"
    SIMPLE = "simple"
    MULTIVALUED_SIMPLE = "multivaluedSimple"
    COMPLEX = "complex"
    COMPLEX_SUB_ATTRIBUTE = "complexSubAttribute"
    MULTIVALUED_COMPLEX = "multivaluedComplex"
    MULTIVALUED_COMPLEX_SUB_ATTRIBUTE = "multivaluedComplexSubAttribute"


@dataclass(frozen=True)
class ClassifiedOperation:
    """
    Validated operation, ready to be applied by the engine. The `kind` tells which
    of the remaining fields are set:

    - `EXTENSION_REF`: `extension`, and a single object value for ADD and REPLACE,
    - sub-attribute kinds: `attr_rep` and `attr` of the parent, and `sub_attr`,
    - all other kinds: `attr_rep` and `attr`.

    `path` is set only when the operation came with a path. Its value selection filter,
    if any, is used to pick matching items of multi-valued attributes.
    """

    kind: OperationKind
    op: PatchOperationType
    attr_rep: Optional[BoundedAttrRep] = None
    attr: Optional[Attribute] = None
    sub_attr: Optional[Attribute] = None
    path: Optional[PatchPath] = None
    values: list[Any] = field(default_factory=list)
    extension: Optional[SchemaExtension] = None

    @property
    def target_rep(self) -> BoundedAttrRep:
        """
        Representation of the targeted attribute or sub-attribute.

        Raises:
            AttributeError: For extension operations, which do not target any attribute.
        """
        if self.attr_rep is None:
            raise AttributeError("operation does not target any attribute")
        if self.sub_attr is None:
            return self.attr_rep
        return self.attr_rep.with_sub_attr(self.sub_attr.name)

    @property
    def is_extension(self) -> bool:
        if self.kind == OperationKind.EXTENSION_REF:
            return True
        return self.attr_rep is not None and self.attr_rep.extension

    @property
    def extension_uri(self) -> Optional[str]:
        if self.extension is not None:
            return str(self.extension.schema)
        if self.attr_rep is not None and self.attr_rep.extension:
            return str(self.attr_rep.schema)
        return None


def get_kind(attr: Attribute, sub_attr: Optional[Attribute]) -> OperationKind:
    if isinstance(attr, Complex):
        if sub_attr is not None:
            if attr.multi_valued:
                return OperationKind.MULTIVALUED_COMPLEX_SUB_ATTRIBUTE
            return OperationKind.COMPLEX_SUB_ATTRIBUTE
        if attr.multi_valued:
            return OperationKind.MULTIVALUED_COMPLEX
        return OperationKind.COMPLEX
    if attr.multi_valued:
        return OperationKind.MULTIVALUED_SIMPLE
    return OperationKind.SIMPLE


class PatchClassifier:
    """
    Resolves the path of the operation against the resource schema and turns the operation
    into `ClassifiedOperation`, validating the operation values on the way.

    Raises:
        InvalidPath: If the path is malformed, targets unknown attribute, or uses value
            selection filter for attribute that is not multi-valued.
        InvalidValue: If the number of values or their shape does not fit the target.
        IgnoreOperation: If the operation targets read-only attribute, or unknown attribute
            when unknown attributes are ignored.
    """

    def __init__(self, schema: ResourceSchema, config: PatchConfig):
        self._schema = schema
        self._config = config

    def classify(self, operation: PatchOperation) -> ClassifiedOperation:
        if operation.path is None:
            raise ValueError("only operations with path can be classified")

        extension = self._schema.get_extension(operation.path)
        if extension is not None:
            return self._classify_extension_ref(operation, extension)

        try:
            path = PatchPath.deserialize(operation.path)
        except ValueError:
            self._unknown(InvalidPath(f"invalid path expression {operation.path!r}"))

        resolved = self._schema.attrs.resolve(path.target_rep)
        if resolved is None:
            self._unknown(InvalidPath(f"path {operation.path!r} does not target known attribute"))

        target_rep, target = resolved
        attr_rep = target_rep.parent
        if target_rep.is_sub_attr:
            attr, sub_attr = target.parent, target
        else:
            attr, sub_attr = target, None
        assert attr is not None

        if path.has_filter and not attr.multi_valued:
            raise InvalidPath(
                f"value selection filter can not be used for single-valued attribute "
                f"{str(attr_rep)!r}"
            )

        if target.read_only:
            raise IgnoreOperation(f"attribute {str(target_rep)!r} is read-only")

        kind = get_kind(attr, sub_attr)
        values = self._validate_values(operation, kind, attr, target, str(target_rep))
        return ClassifiedOperation(
            kind=kind,
            op=operation.op,
            attr_rep=attr_rep,
            attr=attr,
            sub_attr=sub_attr,
            path=path,
            values=values,
        )

    def _classify_extension_ref(
        self, operation: PatchOperation, extension: SchemaExtension
    ) -> ClassifiedOperation:
        if operation.op == PatchOperationType.REMOVE:
            return ClassifiedOperation(
                kind=OperationKind.EXTENSION_REF, op=operation.op, extension=extension
            )

        if len(operation.values) != 1:
            raise InvalidValue(
                f"exactly one value is expected for extension {str(extension.schema)!r}"
            )
        value = load_object(operation.values[0])
        if value is None:
            raise InvalidValue(f"value for extension {str(extension.schema)!r} must be an object")
        return ClassifiedOperation(
            kind=OperationKind.EXTENSION_REF,
            op=operation.op,
            values=[self.clean_object(value, extension.attrs, str(extension.schema))],
            extension=extension,
        )

    def _validate_values(
        self,
        operation: PatchOperation,
        kind: OperationKind,
        attr: Attribute,
        target: Attribute,
        location: str,
    ) -> list[Any]:
        if operation.op == PatchOperationType.REMOVE:
            return []

        values = operation.values
        if len(values) == 0:
            raise InvalidValue(f"no value provided for {location!r}")
        if not target.multi_valued and len(values) > 1:
            raise InvalidValue(f"too many values provided for single-valued {location!r}")

        if kind in [OperationKind.COMPLEX, OperationKind.MULTIVALUED_COMPLEX]:
            assert isinstance(attr, Complex)
            objects = []
            for value in values:
                loaded = load_object(value)
                if loaded is None:
                    raise InvalidValue(
                        f"value for complex attribute {location!r} must be an object"
                    )
                objects.append(self.clean_object(loaded, attr.attrs, location))
            return objects

        for value in values:
            if isinstance(value, (dict, list)):
                raise InvalidValue(f"value for {location!r} must be a simple value")
        return list(values)

    def clean_object(
        self, value: dict[str, Any], attrs: Union[Attrs, BoundedAttrs], location: str
    ) -> dict[str, Any]:
        """
        Returns the copy of the object without read-only keys. Unknown keys are dropped
        if unknown attributes are ignored.

        Raises:
            InvalidPath: If the object contains unknown keys and unknown attributes
                are not ignored.
        """
        cleaned = {}
        for key, item in value.items():
            attr = attrs.get(key)
            if attr is None:
                if not self._config.ignore_unknown_attributes:
                    raise InvalidPath(f"unknown attribute {key!r} in value for {location!r}")
                logger.debug("unknown_attribute_ignored", attribute=key, location=location)
                continue
            if attr.read_only:
                logger.debug("read_only_attribute_ignored", attribute=key, location=location)
                continue
            if isinstance(attr, Complex) and isinstance(item, dict):
                item = self.clean_object(item, attr.attrs, f"{location}.{key}")
            cleaned[key] = item
        return cleaned

    def _unknown(self, error: InvalidPath) -> NoReturn:
        if self._config.ignore_unknown_attributes:
            raise IgnoreOperation(error.detail)
        raise error
