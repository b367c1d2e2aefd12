from scimpatch.patch.classifier import (
    ClassifiedOperation,
    OperationKind,
    PatchClassifier,
)
from scimpatch.patch.decomposer import PatchDecomposer
from scimpatch.patch.engine import PatchContext, PatchEngine
from scimpatch.patch.operation import (
    PATCH_OP_SCHEMA,
    PatchOperation,
    PatchOperationType,
    PatchRequest,
)
from scimpatch.patch.processor import PatchProcessor, PatchResult
from scimpatch.patch.workarounds import (
    ComplexValueRebuilder,
    DottedAttributeRebuilder,
    ExtensionKeyRebuilder,
    PatchWorkaround,
    RemoveRebuilder,
    ValueSubAttributeRebuilder,
    apply_workarounds,
    default_workarounds,
)

__all__ = [
    "PATCH_OP_SCHEMA",
    "PatchOperation",
    "PatchOperationType",
    "PatchRequest",
    "PatchWorkaround",
    "RemoveRebuilder",
    "ValueSubAttributeRebuilder",
    "ComplexValueRebuilder",
    "DottedAttributeRebuilder",
    "ExtensionKeyRebuilder",
    "default_workarounds",
    "apply_workarounds",
    "OperationKind",
    "ClassifiedOperation",
    "PatchClassifier",
    "PatchContext",
    "PatchEngine",
    "PatchDecomposer",
    "PatchProcessor",
    "PatchResult",
]
