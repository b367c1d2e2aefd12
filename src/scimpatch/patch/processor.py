from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import structlog

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Complex
from scimpatch.data.identifiers import AttrRep
from scimpatch.data.schemas import ResourceSchema
from scimpatch.data.scim_data import ScimData
from scimpatch.error import BadRequest, IgnoreOperation, InvalidValue, ScimErrorType
from scimpatch.patch.classifier import ClassifiedOperation, OperationKind, PatchClassifier
from scimpatch.patch.decomposer import PatchDecomposer
from scimpatch.patch.engine import PatchContext, PatchEngine
from scimpatch.patch.operation import PatchOperation, PatchOperationType, PatchRequest
from scimpatch.patch.utils import to_dict
from scimpatch.patch.workarounds import apply_workarounds

logger = structlog.get_logger(__name__)

_LAST_MODIFIED = AttrRep(attr="meta", sub_attr="lastModified")

OnChange = Callable[[dict[str, Any], dict[str, Any]], None]


@dataclass(frozen=True)
class PatchResult:
    """
    Outcome of the PATCH request.

    Attributes:
        resource: The patched resource. Equal to the input resource if nothing changed.
        changed: Whether any operation has effectively changed the resource.
        requested_attributes: Document with a marker entry for every attribute touched by
            ADD or REPLACE operation, `{}` for complex attributes and `""` otherwise.
    """

    resource: dict[str, Any]
    changed: bool
    requested_attributes: dict[str, Any]


def _mark_requested(requested: ScimData, operation: ClassifiedOperation) -> None:
    if operation.op == PatchOperationType.REMOVE:
        return
    if operation.kind == OperationKind.EXTENSION_REF:
        uri = operation.extension_uri
        assert uri is not None
        if uri not in requested:
            requested.set(uri, {})
        return
    target_rep = operation.target_rep
    if target_rep in requested:
        return
    # a whole attribute marked already covers its sub-attributes
    if target_rep.is_sub_attr:
        parent = requested.get(target_rep.parent)
        if isinstance(parent, Mapping) and len(parent) == 0:
            return
    is_complex = isinstance(operation.attr, Complex) and operation.sub_attr is None
    requested.set(target_rep, {} if is_complex else "")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class PatchProcessor:
    """
    Entry point of the PATCH request processing. Applies the operations, in the order they
    were sent, to the copy of the resource. The request is atomic: if any operation fails,
    the error is propagated and the input resource is left untouched.

    Args:
        schema: Schema of the patched resource.
        config: PATCH configuration of the service. Defaults are used if not provided.

    Examples:
        >>> processor = PatchProcessor(UserSchema())
        >>> result = processor.apply(
        >>>     {"schemas": [...], "id": "2819c223", "userName": "bjensen"},
        >>>     [{"op": "replace", "path": "name", "value": {"givenName": "Barbara"}}],
        >>> )
        >>> result.changed
        True
    """

    def __init__(self, schema: ResourceSchema, config: Optional[PatchConfig] = None):
        self._schema = schema
        self._config = config or PatchConfig.create()
        self._classifier = PatchClassifier(schema, self._config)
        self._decomposer = PatchDecomposer(schema, self._config)

    @property
    def schema(self) -> ResourceSchema:
        return self._schema

    @property
    def config(self) -> PatchConfig:
        return self._config

    def apply(
        self,
        resource: Mapping[str, Any],
        operations: Union[PatchRequest, Iterable[Union[PatchOperation, Mapping[str, Any]]]],
        on_change: Optional[OnChange] = None,
    ) -> PatchResult:
        """
        Applies the operations to the resource. If the resource has changed, `meta.lastModified`
        is set to the current time, and `on_change` is called with the original and
        the patched resource, once all operations succeeded.

        Raises:
            BadRequest: If PATCH is not supported, the operations are malformed, or
                REMOVE operation has no path.
            InvalidValue: If any operation value does not fit the target.
            InvalidPath: If any path is invalid or targets unknown attribute.
            NoTarget: If any operation has nothing to operate on.
            Mutability: If any operation violates attribute mutability.
        """
        if not self._config.supported:
            raise BadRequest("PATCH operation is not supported")

        operations = self._load_operations(operations)
        original = ScimData(deepcopy(to_dict(resource)))
        context = PatchContext(
            schema=self._schema,
            config=self._config,
            original=original,
            resource=ScimData(deepcopy(original.to_dict())),
        )
        engine = PatchEngine(context)
        requested = ScimData()

        changed = False
        for index, operation in enumerate(operations):
            try:
                changed = self._apply_operation(engine, context, operation, requested) or changed
            except IgnoreOperation as e:
                logger.debug(
                    "operation_ignored",
                    index=index,
                    op=operation.op.value,
                    path=operation.path,
                    reason=e.reason,
                )

        if changed:
            context.resource.set(_LAST_MODIFIED, _now())
            logger.info(
                "resource_patched",
                resource_type=self._schema.name,
                resource_id=context.resource.get("id", None),
                operations=len(operations),
            )

        patched = context.resource.to_dict()
        if changed and on_change is not None:
            on_change(original.to_dict(), deepcopy(patched))
        return PatchResult(
            resource=patched,
            changed=changed,
            requested_attributes=requested.to_dict(),
        )

    @staticmethod
    def _load_operations(
        operations: Union[PatchRequest, Iterable[Union[PatchOperation, Mapping[str, Any]]]],
    ) -> list[PatchOperation]:
        if isinstance(operations, PatchRequest):
            return operations.operations
        return [
            item if isinstance(item, PatchOperation) else PatchOperation.deserialize(item)
            for item in operations
        ]

    def _apply_operation(
        self,
        engine: PatchEngine,
        context: PatchContext,
        operation: PatchOperation,
        requested: ScimData,
    ) -> bool:
        if operation.op == PatchOperationType.REMOVE and operation.path is None:
            raise BadRequest("missing target for remove operation", ScimErrorType.NO_TARGET)

        operation = apply_workarounds(self._config, self._schema, operation)
        if operation.op == PatchOperationType.REMOVE and operation.values:
            raise InvalidValue("remove operation must not carry values")

        if operation.path is None:
            classified = self._decomposer.decompose(operation, context.resource)
        else:
            classified = [self._classifier.classify(operation)]

        changed = False
        for item in classified:
            changed = engine.apply(item) or changed
            _mark_requested(requested, item)
        return changed
