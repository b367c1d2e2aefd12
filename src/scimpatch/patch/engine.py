from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from typing_extensions import assert_never

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Attribute, AttributeMutability, BoundedAttrs, Complex
from scimpatch.data.identifiers import BoundedAttrRep
from scimpatch.data.schemas import ResourceSchema
from scimpatch.data.scim_data import Missing, ScimData
from scimpatch.error import InvalidValue, Mutability, NoTarget
from scimpatch.patch.classifier import ClassifiedOperation, OperationKind
from scimpatch.patch.operation import PatchOperationType
from scimpatch.patch.utils import get_key, is_empty, to_dict

logger = structlog.get_logger(__name__)

_PRIMARY_NOT_UNIQUE = "'primary' attribute set to 'True' MUST appear no more than once"


@dataclass(frozen=True)
class PatchContext:
    """
    State of a single PATCH request. `original` is the resource as it was before the request,
    and `resource` is the working copy all operations are applied to.
    """

    schema: ResourceSchema
    config: PatchConfig
    original: ScimData
    resource: ScimData


def _to_list(value: Any) -> list[Any]:
    if is_empty(value):
        return []
    if isinstance(value, list):
        return [to_dict(item) if isinstance(item, Mapping) else item for item in value]
    return [to_dict(value) if isinstance(value, Mapping) else value]


def _merge(current: dict[str, Any], value: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(current)
    for key, item in value.items():
        existing_key = get_key(merged, key)
        if existing_key is None:
            merged[key] = item
            continue
        existing = merged[existing_key]
        if isinstance(existing, list) and isinstance(item, list):
            merged[existing_key] = existing + item
        else:
            merged[existing_key] = item
    return merged


def _get(item: Mapping[str, Any], key: str) -> Any:
    existing_key = get_key(item, key)
    if existing_key is None:
        return Missing
    return item[existing_key]


def _is_primary(item: Any) -> bool:
    return isinstance(item, Mapping) and _get(item, "primary") is True


def _strip_primary(items: list[Any], skip: Optional[list[int]] = None) -> None:
    for i, item in enumerate(items):
        if skip and i in skip:
            continue
        if isinstance(item, dict) and (key := get_key(item, "primary")) is not None:
            item.pop(key)


class PatchEngine:
    """
    Applies classified operations to the working copy of the resource, kept in `context`.
    Every operation reports whether it has effectively changed the resource, which is
    determined by comparing the resource before and after the operation.

    Raises:
        NoTarget: If the operation did not find anything to operate on, unless no-target
            failures are disabled in the configuration.
        Mutability: If the operation tries to change immutable attribute that already
            has a value, or read-only attribute.
        InvalidValue: If the operation would leave more than one item marked as primary.
    """

    def __init__(self, context: PatchContext):
        self._context = context

    @property
    def _resource(self) -> ScimData:
        return self._context.resource

    def apply(self, operation: ClassifiedOperation) -> bool:
        before = self._resource.to_dict()
        match operation.kind:
            case OperationKind.EXTENSION_REF:
                self._apply_extension_ref(operation)
            case OperationKind.SIMPLE:
                self._apply_simple(operation)
            case OperationKind.MULTIVALUED_SIMPLE:
                self._apply_multivalued_simple(operation)
            case OperationKind.COMPLEX:
                self._apply_complex(operation)
            case OperationKind.COMPLEX_SUB_ATTRIBUTE:
                self._apply_complex_sub_attribute(operation)
            case OperationKind.MULTIVALUED_COMPLEX:
                self._apply_multivalued_complex(operation)
            case OperationKind.MULTIVALUED_COMPLEX_SUB_ATTRIBUTE:
                self._apply_multivalued_complex_sub_attribute(operation)
            case _:
                assert_never(operation.kind)

        if (extension_uri := operation.extension_uri) is not None:
            self._sync_extension(extension_uri)
        return self._resource.to_dict() != before

    def _no_target(self, detail: str) -> None:
        if self._context.config.do_not_fail_on_no_target:
            logger.debug("no_target_ignored", detail=detail)
            return
        raise NoTarget(detail)

    @staticmethod
    def _check_mutability(attr: Attribute, current: Any, new: Any) -> None:
        if current == new:
            return
        if attr.read_only:
            raise Mutability(f"attribute {str(attr.name)!r} is read-only")
        if attr.mutability == AttributeMutability.IMMUTABLE and not is_empty(current):
            raise Mutability(f"attribute {str(attr.name)!r} is immutable and already has a value")

    @staticmethod
    def _check_removal(attr: Attribute) -> None:
        # immutable values may be removed, only read-only ones are protected
        if attr.read_only:
            raise Mutability(f"attribute {str(attr.name)!r} is read-only")

    def _check_sub_attrs_mutability(self, attr: Complex, current: Any, new: Any) -> None:
        # read-only sub-attributes are stripped from the values, so they are not compared
        current = current if isinstance(current, Mapping) else {}
        new = new if isinstance(new, Mapping) else {}
        for name, sub_attr in attr.attrs:
            if not sub_attr.read_only:
                self._check_mutability(sub_attr, _get(current, name), _get(new, name))

    def _write(self, attr_rep: BoundedAttrRep, value: Any) -> None:
        if is_empty(value):
            self._resource.pop(attr_rep)
        else:
            self._resource.set(attr_rep, value)

    def _matching_indexes(self, operation: ClassifiedOperation, items: list[Any]) -> list[int]:
        path = operation.path
        if path is None or not path.has_filter:
            return list(range(len(items)))
        return [i for i, item in enumerate(items) if path(item, self._context.schema)]

    def _apply_simple(self, operation: ClassifiedOperation) -> None:
        attr_rep, attr = operation.attr_rep, operation.attr
        assert attr_rep is not None and attr is not None
        current = self._resource.get(attr_rep)

        if operation.op == PatchOperationType.REMOVE:
            if is_empty(current):
                return self._no_target(f"attribute {str(attr_rep)!r} has no value to remove")
            self._check_removal(attr)
            self._resource.pop(attr_rep)
            return

        value = operation.values[0]
        if current == value:
            return
        self._check_mutability(attr, current, value)
        self._resource.set(attr_rep, value)

    def _apply_multivalued_simple(self, operation: ClassifiedOperation) -> None:
        attr_rep, attr = operation.attr_rep, operation.attr
        assert attr_rep is not None and attr is not None
        current = self._resource.get(attr_rep)
        items = _to_list(current)
        has_filter = operation.path is not None and operation.path.has_filter
        matches = self._matching_indexes(operation, items)

        if operation.op == PatchOperationType.REMOVE:
            if not matches:
                return self._no_target(f"no value of {str(attr_rep)!r} to remove")
            self._check_removal(attr)
            self._write(attr_rep, [item for i, item in enumerate(items) if i not in matches])
            return

        if operation.op == PatchOperationType.REPLACE:
            if has_filter and not matches:
                return self._no_target(f"no value of {str(attr_rep)!r} matches the filter")
            new = [item for i, item in enumerate(items) if i not in matches]
            new.extend(value for value in operation.values if value not in new)
        else:
            new = list(items)
            new.extend(value for value in operation.values if value not in new)

        self._check_mutability(attr, items, new)
        self._write(attr_rep, new)

    def _apply_complex(self, operation: ClassifiedOperation) -> None:
        attr_rep, attr = operation.attr_rep, operation.attr
        assert attr_rep is not None and isinstance(attr, Complex)
        current = self._resource.get(attr_rep)
        current = to_dict(current) if isinstance(current, Mapping) else {}

        if operation.op == PatchOperationType.REMOVE:
            if not current:
                return self._no_target(f"attribute {str(attr_rep)!r} has no value to remove")
            self._check_removal(attr)
            self._resource.pop(attr_rep)
            return

        op = operation.op
        if op == PatchOperationType.REPLACE and self._context.config.sailpoint_workaround:
            op = PatchOperationType.ADD

        value = operation.values[0]
        new = _merge(current, value) if op == PatchOperationType.ADD else dict(value)
        self._check_mutability(attr, current, new)
        self._check_sub_attrs_mutability(attr, current, new)
        self._write(attr_rep, new)

    def _apply_complex_sub_attribute(self, operation: ClassifiedOperation) -> None:
        attr_rep, sub_attr = operation.attr_rep, operation.sub_attr
        assert attr_rep is not None and sub_attr is not None
        target_rep = operation.target_rep
        parent = self._resource.get(attr_rep)
        if not is_empty(parent) and not isinstance(parent, Mapping):
            raise InvalidValue(f"value of {str(attr_rep)!r} is not an object")
        current = self._resource.get(target_rep)

        if sub_attr.multi_valued:
            items = _to_list(current)
            if operation.op == PatchOperationType.REMOVE:
                if not items:
                    return self._no_target(f"attribute {str(target_rep)!r} has no value to remove")
                new: Any = []
                self._check_removal(sub_attr)
            else:
                if operation.op == PatchOperationType.REPLACE:
                    new = list(operation.values)
                else:
                    new = items + [value for value in operation.values if value not in items]
                self._check_mutability(sub_attr, items, new)
        elif operation.op == PatchOperationType.REMOVE:
            if is_empty(current):
                return self._no_target(f"attribute {str(target_rep)!r} has no value to remove")
            new = Missing
            self._check_removal(sub_attr)
        else:
            new = operation.values[0]
            if current == new:
                return
            self._check_mutability(sub_attr, current, new)

        self._write(target_rep, new)
        if is_empty(self._resource.get(attr_rep)):
            self._resource.pop(attr_rep)

    def _apply_multivalued_complex(self, operation: ClassifiedOperation) -> None:
        attr_rep, attr = operation.attr_rep, operation.attr
        assert attr_rep is not None and isinstance(attr, Complex)
        items = _to_list(self._resource.get(attr_rep))
        has_filter = operation.path is not None and operation.path.has_filter

        if operation.op == PatchOperationType.REMOVE:
            matches = self._matching_indexes(operation, items)
            if not matches:
                return self._no_target(f"no value of {str(attr_rep)!r} to remove")
            self._check_removal(attr)
            for i in reversed(matches):
                items.pop(i)
            self._write(attr_rep, items)
            return

        if has_filter:
            self._update_matching_items(operation, attr, items)
        else:
            self._append_items(operation, attr, items)

    def _update_matching_items(
        self, operation: ClassifiedOperation, attr: Complex, items: list[Any]
    ) -> None:
        attr_rep = operation.attr_rep
        assert attr_rep is not None
        matches = self._matching_indexes(operation, items)
        if not matches:
            return self._no_target(f"no value of {str(attr_rep)!r} matches the filter")

        value: dict[str, Any] = {}
        for item in operation.values:
            value = _merge(value, item)

        original = deepcopy(items)
        if _is_primary(value):
            if len(matches) > 1:
                raise InvalidValue(_PRIMARY_NOT_UNIQUE)
            _strip_primary(items, skip=matches)

        for i in matches:
            current = items[i] if isinstance(items[i], dict) else {}
            if operation.op == PatchOperationType.ADD:
                new = _merge(current, value)
            else:
                new = dict(value)
            self._check_sub_attrs_mutability(attr, current, new)
            items[i] = new
        self._check_mutability(attr, original, items)
        self._write(attr_rep, items)

    def _append_items(
        self, operation: ClassifiedOperation, attr: Complex, items: list[Any]
    ) -> None:
        attr_rep = operation.attr_rep
        assert attr_rep is not None
        if sum(1 for value in operation.values if _is_primary(value)) > 1:
            raise InvalidValue(_PRIMARY_NOT_UNIQUE)

        original = deepcopy(items)
        if operation.op == PatchOperationType.REPLACE:
            items = []

        for value in operation.values:
            if operation.op == PatchOperationType.ADD and value in items:
                continue
            if _is_primary(value):
                _strip_primary(items)
            items.append(dict(value))
        self._check_mutability(attr, original, items)
        self._write(attr_rep, items)

    def _apply_multivalued_complex_sub_attribute(self, operation: ClassifiedOperation) -> None:
        attr_rep, sub_attr = operation.attr_rep, operation.sub_attr
        assert attr_rep is not None and sub_attr is not None
        items = _to_list(self._resource.get(attr_rep))
        has_filter = operation.path is not None and operation.path.has_filter
        matches = self._matching_indexes(operation, items)
        sub_attr_name = str(sub_attr.name)

        if not matches:
            if has_filter or operation.op == PatchOperationType.REMOVE:
                return self._no_target(f"no value of {str(attr_rep)!r} to operate on")
            logger.debug("no_items_to_update", attribute=str(operation.target_rep))
            return

        original = deepcopy(items)
        if (
            sub_attr_name.lower() == "primary"
            and operation.op != PatchOperationType.REMOVE
            and operation.values[0] is True
        ):
            if len(matches) > 1:
                raise InvalidValue(_PRIMARY_NOT_UNIQUE)
            _strip_primary(items, skip=matches)

        removed = False
        for i in matches:
            item = items[i]
            if not isinstance(item, dict):
                continue
            key = get_key(item, sub_attr_name) or sub_attr_name
            current = item.get(key, Missing)
            if operation.op == PatchOperationType.REMOVE:
                if is_empty(current):
                    continue
                self._check_removal(sub_attr)
                item.pop(key)
                removed = True
                continue

            if sub_attr.multi_valued:
                existing = _to_list(current)
                if operation.op == PatchOperationType.REPLACE:
                    new = list(operation.values)
                else:
                    new = existing + [value for value in operation.values if value not in existing]
            else:
                new = operation.values[0]
            self._check_mutability(sub_attr, current, new)
            item[key] = new

        if operation.op == PatchOperationType.REMOVE and not removed:
            return self._no_target(f"no value of {str(operation.target_rep)!r} to remove")
        if operation.op != PatchOperationType.REMOVE:
            assert operation.attr is not None
            self._check_mutability(operation.attr, original, items)

        self._write(attr_rep, [item for item in items if item != {}])

    def _apply_extension_ref(self, operation: ClassifiedOperation) -> None:
        extension = operation.extension
        assert extension is not None
        uri = str(extension.schema)
        current = self._resource.get(uri)
        current = to_dict(current) if isinstance(current, Mapping) else {}

        if operation.op == PatchOperationType.REMOVE:
            if not current:
                return self._no_target(f"extension {uri!r} has no value to remove")
            self._resource.pop(uri)
            return

        new = operation.values[0]
        self._check_extension_mutability(extension.attrs, current, new)
        if new:
            self._resource.set(uri, new)
        else:
            self._resource.pop(uri)

    def _check_extension_mutability(
        self, attrs: BoundedAttrs, current: Mapping[str, Any], new: Mapping[str, Any]
    ) -> None:
        for attr_rep, attr in attrs:
            if attr.read_only:
                continue
            current_value, new_value = _get(current, attr_rep.attr), _get(new, attr_rep.attr)
            self._check_mutability(attr, current_value, new_value)
            if isinstance(attr, Complex):
                self._check_sub_attrs_mutability(attr, current_value, new_value)

    def _sync_extension(self, uri: str) -> None:
        """
        Makes sure the extension URI is in `schemas` if and only if the extension object
        is present and not empty.
        """
        value = self._resource.get(uri)
        schemas = self._resource.get("schemas")
        schemas = list(schemas) if isinstance(schemas, list) else []
        others = [
            item for item in schemas if not (isinstance(item, str) and item.lower() == uri.lower())
        ]
        registered = len(others) != len(schemas)

        if isinstance(value, Mapping) and len(value) > 0:
            if not registered:
                self._resource.set("schemas", schemas + [uri])
            return

        if value is not Missing:
            self._resource.pop(uri)
        if registered:
            self._resource.set("schemas", others)
