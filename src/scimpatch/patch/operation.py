from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Optional

from typing_extensions import Self

from scimpatch.data.scim_data import Missing, ScimData
from scimpatch.error import BadRequest, ScimErrorType

PATCH_OP_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"


class PatchOperationType(str, Enum):
    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True)
class PatchOperation:
    """
    Single PATCH operation, as sent by the client. The path is kept as a raw expression,
    since workarounds may need to rewrite it before it is parsed. The operation value is
    always kept as a list of values.
    """

    op: PatchOperationType
    path: Optional[str] = None
    values: list[Any] = field(default_factory=list)

    @classmethod
    def deserialize(cls, data: Mapping) -> Self:
        """
        Deserializes the operation from its wire representation. The `op` is case-insensitive.
        The `value` is normalized to the list of values: a list is taken as is, a missing
        value or `null` becomes an empty list, and anything else becomes a one-element list.

        Raises:
            BadRequest: If the operation is not an object, or `op` is not a supported
                operation type.
        """
        if not isinstance(data, Mapping):
            raise BadRequest("patch operation must be an object", ScimErrorType.INVALID_SYNTAX)

        data = ScimData(data)
        op = data.get("op")
        try:
            type_ = PatchOperationType(op.lower() if isinstance(op, str) else op)
        except ValueError:
            raise BadRequest(f"unsupported patch operation {op!r}", ScimErrorType.INVALID_SYNTAX)

        path = data.get("path")
        if path in [None, Missing, ""]:
            path = None
        elif not isinstance(path, str):
            raise BadRequest("'path' must be a string", ScimErrorType.INVALID_SYNTAX)

        value = data.get("value")
        if value in [None, Missing]:
            values = []
        elif isinstance(value, list):
            values = value
        else:
            values = [value]
        return cls(op=type_, path=path, values=[_to_python(item) for item in values])

    def serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {"op": self.op.value}
        if self.path is not None:
            data["path"] = self.path
        if self.values:
            data["value"] = self.values if len(self.values) > 1 else self.values[0]
        return data


class PatchRequest:
    """
    PATCH request message, identified by `urn:ietf:params:scim:api:messages:2.0:PatchOp`
    schema URI.
    """

    def __init__(self, operations: Sequence[PatchOperation]):
        self._operations = list(operations)

    def __getitem__(self, index: int) -> PatchOperation:
        return self._operations[index]

    def __iter__(self) -> Iterator[PatchOperation]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def operations(self) -> list[PatchOperation]:
        return self._operations

    @classmethod
    def deserialize(cls, body: Mapping) -> Self:
        """
        Deserializes PATCH request body.

        Raises:
            BadRequest: If the body does not declare PatchOp schema or does not contain
                `Operations` list.
        """
        if not isinstance(body, Mapping):
            raise BadRequest("request body must be an object", ScimErrorType.INVALID_SYNTAX)

        data = ScimData(body)
        schemas = data.get("schemas")
        if not isinstance(schemas, list) or not any(
            isinstance(item, str) and item.lower() == PATCH_OP_SCHEMA.lower() for item in schemas
        ):
            raise BadRequest(
                f"'schemas' must contain {PATCH_OP_SCHEMA!r}", ScimErrorType.INVALID_SYNTAX
            )

        operations = data.get("Operations")
        if not isinstance(operations, list):
            raise BadRequest("'Operations' must be a list", ScimErrorType.INVALID_SYNTAX)
        return cls([PatchOperation.deserialize(operation) for operation in operations])

    def serialize(self) -> dict[str, Any]:
        return {
            "schemas": [PATCH_OP_SCHEMA],
            "Operations": [operation.serialize() for operation in self._operations],
        }

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, PatchRequest):
            return False
        return self._operations == other._operations


def _to_python(value: Any) -> Any:
    if isinstance(value, ScimData):
        return value.to_dict()
    if isinstance(value, list):
        return [_to_python(item) for item in value]
    return value
