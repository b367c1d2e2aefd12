import abc
from copy import deepcopy
from dataclasses import replace
from typing import Any, Mapping, Optional

import structlog

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Attribute, Complex
from scimpatch.data.identifiers import BoundedAttrRep
from scimpatch.data.patch_path import PatchPath
from scimpatch.data.schemas import ResourceSchema
from scimpatch.data.utils import serialize_comparison_value
from scimpatch.error import InvalidValue
from scimpatch.patch.operation import PatchOperation, PatchOperationType
from scimpatch.patch.utils import get_key, load_json, load_object, to_dict

logger = structlog.get_logger(__name__)


class PatchWorkaround(abc.ABC):
    """
    Base class for normalizers of non-conformant PATCH operations, sent by some clients.
    Workarounds never fail on ambiguous input. Instead, they return the operation untouched,
    so the regular validation reports the actual problem.
    """

    @abc.abstractmethod
    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        """Tells whether the workaround applies to the operation."""

    @abc.abstractmethod
    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        """Returns the fixed operation, or the original one if it can not be fixed."""

    def execute_other_handlers(self) -> bool:
        """
        Tells whether the workarounds that come after this one should run, once this one
        has been applied.
        """
        return True

    @property
    def name(self) -> str:
        return self.__class__.__name__


class RemoveRebuilder(PatchWorkaround):
    """
    Rewrites REMOVE operation that carries values, e.g.

        {"op": "remove", "path": "members", "value": [{"value": "42"}]}

    into the operation with value selection filter and no values, e.g.

        {"op": "remove", "path": "members[value eq \"42\"]"}

    Multiple values are joined with `or`.
    """

    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        return (
            config.ms_azure_remove_workaround
            and operation.op == PatchOperationType.REMOVE
            and operation.path is not None
            and len(operation.values) > 0
        )

    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        conditions = []
        for value in operation.values:
            try:
                loaded = load_json(value)
            except ValueError:
                logger.debug("workaround_declined", workaround=self.name, reason="invalid json")
                return operation
            if not isinstance(loaded, Mapping):
                logger.debug("workaround_declined", workaround=self.name, reason="not an object")
                return operation
            if len(loaded) != 1:
                logger.debug(
                    "workaround_declined", workaround=self.name, reason="more than one key"
                )
                return operation
            key, item = next(iter(loaded.items()))
            if isinstance(item, (Mapping, list)):
                logger.debug("workaround_declined", workaround=self.name, reason="nested value")
                return operation
            conditions.append(f"{key} eq {serialize_comparison_value(item)}")

        path = f"{operation.path}[{' or '.join(conditions)}]"
        logger.debug("workaround_applied", workaround=self.name, path=path)
        return replace(operation, path=path, values=[])


class ValueSubAttributeRebuilder(PatchWorkaround):
    """
    Unwraps values like `{"value": "{\\"active\\": false}"}` into `{"active": false}`.
    Every value is handled separately, and values that do not fit are kept untouched.
    """

    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        return (
            config.ms_azure_value_sub_attribute_workaround
            and operation.op != PatchOperationType.REMOVE
            and len(operation.values) > 0
        )

    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        fixed_values = []
        applied = False
        for value in operation.values:
            unwrapped = self._unwrap(value)
            if unwrapped is None:
                fixed_values.append(value)
                continue
            fixed_values.append(unwrapped)
            applied = True

        if not applied:
            logger.debug("workaround_declined", workaround=self.name, reason="nothing to unwrap")
            return operation
        logger.debug("workaround_applied", workaround=self.name)
        return replace(operation, values=fixed_values)

    @staticmethod
    def _unwrap(value: Any) -> Optional[dict[str, Any]]:
        loaded = load_object(value)
        if loaded is None or len(loaded) != 1:
            return None
        inner = loaded.get("value")
        if not isinstance(inner, str):
            return None
        return load_object(inner)


class ComplexValueRebuilder(PatchWorkaround):
    """
    Wraps simple values sent for the path that targets complex attribute into
    `{"value": ...}` object, e.g. `"42"` becomes `{"value": "42"}` for `path="manager"`.
    """

    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        if not config.ms_azure_complex_simple_value_workaround or operation.path is None:
            return False
        if schema.get_extension(operation.path) is not None:
            return False
        try:
            path = PatchPath.deserialize(operation.path)
        except ValueError:
            return False
        attr = schema.attrs.get(path.target_rep)
        if not isinstance(attr, Complex):
            return False
        return any(not self._is_structured(value) for value in operation.values)

    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        fixed_values = [
            value if self._is_structured(value) else {"value": value}
            for value in operation.values
        ]
        logger.debug("workaround_applied", workaround=self.name, path=operation.path)
        return replace(operation, values=fixed_values)

    @staticmethod
    def _is_structured(value: Any) -> bool:
        try:
            loaded = load_json(value)
        except ValueError:
            return False
        return isinstance(loaded, (Mapping, list))


class DottedAttributeRebuilder(PatchWorkaround):
    """
    Rebuilds dotted keys of the resource fragment, sent in operation without path, into
    nested objects, e.g. `{"name.givenName": "Max"}` becomes `{"name": {"givenName": "Max"}}`.
    Only one level of nesting is supported. Extension objects, listed in the fragment's
    `schemas`, are handled as well.
    """

    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        return (
            config.ms_azure_dotted_attribute_workaround
            and operation.path is None
            and operation.op != PatchOperationType.REMOVE
            and len(operation.values) == 1
        )

    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        root = load_object(operation.values[0])
        if root is None:
            logger.debug("workaround_declined", workaround=self.name, reason="not an object")
            return operation

        nodes = [root]
        schemas_key = get_key(root, "schemas")
        schemas = root.get(schemas_key) if schemas_key else None
        if isinstance(schemas, list):
            lower_schemas = [item.lower() for item in schemas if isinstance(item, str)]
            for key, value in root.items():
                if key.lower() not in lower_schemas:
                    continue
                if not isinstance(value, dict):
                    logger.debug(
                        "workaround_declined",
                        workaround=self.name,
                        reason="extension value is not an object",
                    )
                    return operation
                nodes.append(value)

        applied = False
        for node in nodes:
            applied = self._rebuild(node) or applied

        if not applied:
            logger.debug("workaround_declined", workaround=self.name, reason="no dotted keys")
            return operation
        logger.debug("workaround_applied", workaround=self.name)
        return replace(operation, values=[root])

    @staticmethod
    def _rebuild(node: dict[str, Any]) -> bool:
        applied = False
        for key in list(node):
            if ":" in key:
                continue
            parts = key.split(".")
            if len(parts) != 2:
                continue
            parent, child = parts
            parent_value = node.get(parent)
            if not isinstance(parent_value, dict):
                parent_value = node[parent] = {}
            parent_value[child] = node.pop(key)
            applied = True
        return applied


class ExtensionKeyRebuilder(PatchWorkaround):
    """
    Rebuilds keys of the resource fragment that start with schema extension URI, e.g.

        {"urn:ietf:params:scim:schemas:extension:enterprise:2.0:User:manager.value": "42"}

    into nested extension object

        {"urn:ietf:params:scim:schemas:extension:enterprise:2.0:User": {"manager": {"value": "42"}}}

    Keys that point to unknown attributes are left untouched.

    Raises:
        InvalidValue: If the key points to multi-valued attribute, or the value does not fit
            the attribute.
    """

    def should_be_handled(
        self, config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
    ) -> bool:
        return (
            operation.path is None
            and operation.op != PatchOperationType.REMOVE
            and len(operation.values) > 0
            and len(schema.extensions) > 0
        )

    def fix(self, schema: ResourceSchema, operation: PatchOperation) -> PatchOperation:
        fixed_values = []
        applied = False
        for value in operation.values:
            if not isinstance(value, Mapping):
                fixed_values.append(value)
                continue
            fixed, value_applied = self._rebuild(schema, to_dict(value))
            fixed_values.append(fixed)
            applied = applied or value_applied

        if not applied:
            return operation
        logger.debug("workaround_applied", workaround=self.name)
        return replace(operation, values=fixed_values)

    def _rebuild(self, schema: ResourceSchema, value: dict[str, Any]) -> tuple[dict, bool]:
        output = deepcopy(value)
        applied = False
        for key in list(value):
            for extension_uri in schema.extensions:
                prefix = f"{extension_uri}:"
                if len(key) <= len(prefix) or not key.lower().startswith(prefix.lower()):
                    continue
                attr_exp = key[len(prefix) :]
                extension = schema.get_extension(extension_uri)
                resolved = extension.attrs.resolve(attr_exp) if extension else None
                if resolved is None:
                    continue
                attr_rep, attr = resolved
                item = output.pop(key)
                extension_key = get_key(output, extension_uri) or str(extension_uri)
                extension_value = output.setdefault(extension_key, {})
                if not isinstance(extension_value, dict):
                    raise InvalidValue(f"value of {extension_key!r} must be an object")
                self._set(extension_value, attr_rep, attr, item, key)
                applied = True
                break
        return output, applied

    @staticmethod
    def _set(
        extension_value: dict, attr_rep: BoundedAttrRep, attr: Attribute, item: Any, key: str
    ) -> None:
        if attr.multi_valued or (attr.parent is not None and attr.parent.multi_valued):
            raise InvalidValue(f"unsupported patch operation with key-reference {key!r}")

        if isinstance(attr, Complex):
            if not isinstance(item, Mapping):
                raise InvalidValue(f"value for attribute {key!r} must be an object")
            existing = extension_value.get(str(attr_rep.attr))
            if isinstance(existing, dict):
                existing.update(to_dict(item))
            else:
                extension_value[str(attr_rep.attr)] = to_dict(item)
            return

        if isinstance(item, (Mapping, list)):
            raise InvalidValue(f"invalid value for attribute {key!r}")

        if attr_rep.is_sub_attr:
            parent = extension_value.get(str(attr_rep.attr))
            if not isinstance(parent, dict):
                parent = extension_value[str(attr_rep.attr)] = {}
            parent[str(attr_rep.sub_attr)] = item
            return
        extension_value[str(attr_rep.attr)] = item


def default_workarounds() -> tuple[PatchWorkaround, ...]:
    """
    Returns the default chain of workarounds, in the order they are executed.
    """
    return (
        RemoveRebuilder(),
        ValueSubAttributeRebuilder(),
        ComplexValueRebuilder(),
        DottedAttributeRebuilder(),
        ExtensionKeyRebuilder(),
    )


def apply_workarounds(
    config: PatchConfig, schema: ResourceSchema, operation: PatchOperation
) -> PatchOperation:
    """
    Runs the chain of workarounds, configured in `config`, over the operation.
    """
    workarounds = config.workarounds if config.workarounds is not None else default_workarounds()
    for workaround in workarounds:
        if not workaround.should_be_handled(config, schema, operation):
            continue
        operation = workaround.fix(schema, operation)
        if not workaround.execute_other_handlers():
            break
    return operation
