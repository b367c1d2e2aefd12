import pytest
from structlog.testing import capture_logs

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import Complex, String
from scimpatch.data.schemas import SchemaExtension
from scimpatch.error import InvalidValue
from scimpatch.patch.operation import PatchOperation, PatchOperationType
from scimpatch.patch.workarounds import (
    ExtensionKeyRebuilder,
    PatchWorkaround,
    RemoveRebuilder,
    apply_workarounds,
    default_workarounds,
)
from tests.conftest import ENTERPRISE_USER, FakeSchema

FAKE_EXTENSION = "urn:fake:extension"


class FakeExtension(SchemaExtension):
    schema = FAKE_EXTENSION
    name = "FakeExtension"
    base_attrs = [
        String("tags", multi_valued=True),
        Complex("items", multi_valued=True, sub_attributes=[String("value")]),
    ]


@pytest.fixture(scope="module")
def extended_schema():
    schema = FakeSchema()
    schema.extend(FakeExtension())
    return schema


def _remove(path, values):
    return PatchOperation(op=PatchOperationType.REMOVE, path=path, values=values)


@pytest.mark.parametrize(
    ("values", "expected_path"),
    (
        ([{"value": "42"}], 'members[value eq "42"]'),
        ([{"value": "1"}, {"value": "2"}], 'members[value eq "1" or value eq "2"]'),
        (['{"value": "42"}'], 'members[value eq "42"]'),
        ([{"value": 42}], "members[value eq 42]"),
        ([{"display": True}], "members[display eq true]"),
    ),
)
def test_remove_with_values_is_rebuilt_to_filtered_path(values, expected_path, group_schema):
    operation = apply_workarounds(
        PatchConfig.create(), group_schema, _remove("members", values)
    )

    assert operation == _remove(expected_path, [])


@pytest.mark.parametrize(
    ("values", "reason"),
    (
        ([{"value": "42", "display": "x"}], "more than one key"),
        (["42"], "not an object"),
        ([{"value": {"nested": "42"}}], "nested value"),
        (["{not json"], "invalid json"),
        ([{"value": "1"}, ["x"]], "not an object"),
    ),
)
def test_remove_rebuilder_declines_values_that_do_not_fit(values, reason, group_schema):
    original = _remove("members", values)

    with capture_logs() as logs:
        operation = apply_workarounds(PatchConfig.create(), group_schema, original)

    assert operation == original
    assert {
        "event": "workaround_declined",
        "workaround": "RemoveRebuilder",
        "reason": reason,
        "log_level": "debug",
    } in logs


def test_remove_rebuilder_does_not_run_if_disabled(group_schema):
    config = PatchConfig.create(ms_azure_remove_workaround=False)
    original = _remove("members", [{"value": "42"}])

    assert apply_workarounds(config, group_schema, original) == original


@pytest.mark.parametrize(
    ("values", "expected"),
    (
        ([{"value": '{"active": false}'}], [{"active": False}]),
        (
            [{"value": '{"nickName": "Babs"}'}, {"value": "plain"}],
            [{"nickName": "Babs"}, {"value": "plain"}],
        ),
        ([{"value": "plain"}], [{"value": "plain"}]),
        ([{"value": '{"a": 1}', "display": "x"}], [{"value": '{"a": 1}', "display": "x"}]),
    ),
)
def test_value_sub_attribute_is_unwrapped(values, expected, user_schema):
    config = PatchConfig.create(ms_azure_value_sub_attribute_workaround=True)
    operation = PatchOperation(op=PatchOperationType.REPLACE, values=values)

    assert apply_workarounds(config, user_schema, operation).values == expected


def test_value_sub_attribute_is_not_unwrapped_if_disabled(user_schema):
    operation = PatchOperation(
        op=PatchOperationType.REPLACE, values=[{"value": '{"active": false}'}]
    )

    assert apply_workarounds(PatchConfig.create(), user_schema, operation) == operation


@pytest.mark.parametrize(
    ("path", "values", "expected"),
    (
        ("manager", ["42"], [{"value": "42"}]),
        (
            "emails",
            ["a@b.com", {"value": "c@d.com"}],
            [{"value": "a@b.com"}, {"value": "c@d.com"}],
        ),
        ("emails", ['{"value": "c@d.com"}'], ['{"value": "c@d.com"}']),
        ("userName", ["bjensen"], ["bjensen"]),
        (ENTERPRISE_USER, ["42"], ["42"]),
        ("bad^path", ["42"], ["42"]),
    ),
)
def test_simple_value_for_complex_attribute_is_wrapped(path, values, expected, user_schema):
    config = PatchConfig.create(ms_azure_complex_simple_value_workaround=True)
    operation = PatchOperation(op=PatchOperationType.ADD, path=path, values=values)

    assert apply_workarounds(config, user_schema, operation).values == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    (
        (
            {"name.givenName": "Max", "name.familyName": "Doe", "nickName": "Babs"},
            {"nickName": "Babs", "name": {"givenName": "Max", "familyName": "Doe"}},
        ),
        (
            {"name": {"formatted": "Max Doe"}, "name.givenName": "Max"},
            {"name": {"formatted": "Max Doe", "givenName": "Max"}},
        ),
        (
            {"schemas": [ENTERPRISE_USER], ENTERPRISE_USER: {"manager.value": "42"}},
            {"schemas": [ENTERPRISE_USER], ENTERPRISE_USER: {"manager": {"value": "42"}}},
        ),
        (
            {"a.b.c": "x"},
            {"a.b.c": "x"},
        ),
    ),
)
def test_dotted_attributes_are_rebuilt(value, expected, user_schema):
    config = PatchConfig.create(ms_azure_dotted_attribute_workaround=True)
    operation = PatchOperation(op=PatchOperationType.ADD, values=[value])

    assert apply_workarounds(config, user_schema, operation).values == [expected]


@pytest.mark.parametrize(
    ("value", "expected"),
    (
        (
            {f"{ENTERPRISE_USER}:employeeNumber": "42", "nickName": "Babs"},
            {"nickName": "Babs", ENTERPRISE_USER: {"employeeNumber": "42"}},
        ),
        (
            {ENTERPRISE_USER: {"costCenter": "1"}, f"{ENTERPRISE_USER}:manager": {"value": "42"}},
            {ENTERPRISE_USER: {"costCenter": "1", "manager": {"value": "42"}}},
        ),
        (
            {f"{ENTERPRISE_USER}:manager.value": "42"},
            {ENTERPRISE_USER: {"manager": {"value": "42"}}},
        ),
        (
            {f"{ENTERPRISE_USER.upper()}:COSTCENTER": "1"},
            {ENTERPRISE_USER: {"costCenter": "1"}},
        ),
        (
            {f"{ENTERPRISE_USER}:unknown": "x"},
            {f"{ENTERPRISE_USER}:unknown": "x"},
        ),
        (
            {ENTERPRISE_USER: {"costCenter": "1"}},
            {ENTERPRISE_USER: {"costCenter": "1"}},
        ),
    ),
)
def test_extension_keys_are_rebuilt(value, expected, user_schema):
    operation = PatchOperation(op=PatchOperationType.ADD, values=[value])

    assert apply_workarounds(PatchConfig.create(), user_schema, operation).values == [expected]


@pytest.mark.parametrize(
    ("key", "value", "message"),
    (
        (f"{FAKE_EXTENSION}:tags", ["a"], "unsupported patch operation with key-reference"),
        (f"{FAKE_EXTENSION}:items.value", "a", "unsupported patch operation with key-reference"),
    ),
)
def test_extension_key_for_multi_valued_attribute_is_rejected(
    key, value, message, extended_schema
):
    operation = PatchOperation(op=PatchOperationType.ADD, values=[{key: value}])

    with pytest.raises(InvalidValue, match=message):
        apply_workarounds(PatchConfig.create(), extended_schema, operation)


@pytest.mark.parametrize(
    ("key", "value", "message"),
    (
        (f"{ENTERPRISE_USER}:manager", "42", "must be an object"),
        (f"{ENTERPRISE_USER}:employeeNumber", {"value": "42"}, "invalid value for attribute"),
        (f"{ENTERPRISE_USER}:manager.value", ["42"], "invalid value for attribute"),
    ),
)
def test_extension_key_with_value_that_does_not_fit_is_rejected(
    key, value, message, user_schema
):
    operation = PatchOperation(op=PatchOperationType.ADD, values=[{key: value}])

    with pytest.raises(InvalidValue, match=message):
        apply_workarounds(PatchConfig.create(), user_schema, operation)


def test_extension_key_rebuilder_skips_operations_with_path(user_schema):
    operation = PatchOperation(
        op=PatchOperationType.ADD,
        path="nickName",
        values=[{f"{ENTERPRISE_USER}:employeeNumber": "42"}],
    )

    assert not ExtensionKeyRebuilder().should_be_handled(
        PatchConfig.create(), user_schema, operation
    )


class StopChain(PatchWorkaround):
    def should_be_handled(self, config, schema, operation):
        return True

    def fix(self, schema, operation):
        return PatchOperation(op=operation.op, path="nickName", values=operation.values)

    def execute_other_handlers(self):
        return False


def test_workaround_chain_can_be_short_circuited(group_schema):
    config = PatchConfig.create(workarounds=[StopChain(), RemoveRebuilder()])

    operation = apply_workarounds(config, group_schema, _remove("members", [{"value": "42"}]))

    assert operation == _remove("nickName", [{"value": "42"}])


def test_configured_workarounds_are_run_in_order(group_schema):
    config = PatchConfig.create(workarounds=[RemoveRebuilder(), StopChain()])

    operation = apply_workarounds(config, group_schema, _remove("members", [{"value": "42"}]))

    assert operation == _remove("nickName", [])


def test_default_workarounds_chain():
    assert [workaround.name for workaround in default_workarounds()] == [
        "RemoveRebuilder",
        "ValueSubAttributeRebuilder",
        "ComplexValueRebuilder",
        "DottedAttributeRebuilder",
        "ExtensionKeyRebuilder",
    ]
