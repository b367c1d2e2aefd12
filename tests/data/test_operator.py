import pytest

from scimpatch.data.identifiers import AttrRep
from scimpatch.data.operator import (
    And,
    ComplexAttributeOperator,
    Contains,
    EndsWith,
    Equal,
    GreaterThan,
    GreaterThanOrEqual,
    LesserThan,
    LesserThanOrEqual,
    Not,
    NotEqual,
    Or,
    Present,
    StartsWith,
)
from scimpatch.data.scim_data import ScimData


@pytest.mark.parametrize(
    ("operator", "value", "expected"),
    (
        (Equal(AttrRep(attr="str"), "ABC"), {"str": "abc"}, True),
        (Equal(AttrRep(attr="str_cs"), "ABC"), {"str_cs": "abc"}, False),
        (Equal(AttrRep(attr="str_cs"), "abc"), {"str_cs": "abc"}, True),
        (Equal(AttrRep(attr="int"), 1), {"int": 1}, True),
        (Equal(AttrRep(attr="str_mv"), "b"), {"str_mv": ["a", "b"]}, True),
        (Equal(AttrRep(attr="c_mv"), "a"), {"c_mv": [{"value": "x"}, {"value": "a"}]}, True),
        (Equal(AttrRep(attr="unknown"), "a"), {"unknown": "a"}, False),
        (Equal(AttrRep(attr="str"), "a"), {}, False),
        (NotEqual(AttrRep(attr="int"), 1), {"int": 2}, True),
        (Contains(AttrRep(attr="str"), "BC"), {"str": "abcd"}, True),
        (StartsWith(AttrRep(attr="str"), "ab"), {"str": "abcd"}, True),
        (StartsWith(AttrRep(attr="str_cs"), "AB"), {"str_cs": "abcd"}, False),
        (EndsWith(AttrRep(attr="str"), "x"), {"str": "abcd"}, False),
        (Contains(AttrRep(attr="int"), "1"), {"int": 1}, False),
        (GreaterThan(AttrRep(attr="int"), 1), {"int": 2}, True),
        (GreaterThan(AttrRep(attr="int"), "a"), {"int": 2}, False),
        (GreaterThanOrEqual(AttrRep(attr="int"), 2), {"int": 2}, True),
        (LesserThan(AttrRep(attr="int"), 2), {"int": 2}, False),
        (LesserThanOrEqual(AttrRep(attr="int_mv"), 1), {"int_mv": [3, 1]}, True),
        (Present(AttrRep(attr="str")), {"str": "x"}, True),
        (Present(AttrRep(attr="str")), {"str": ""}, False),
        (Present(AttrRep(attr="str")), {}, False),
        (Present(AttrRep(attr="c")), {"c": {"value": "x"}}, True),
        (Present(AttrRep(attr="c")), {"c": {"value": ""}}, False),
        (Present(AttrRep(attr="str_mv")), {"str_mv": ["", "x"]}, True),
    ),
)
def test_attribute_operator_matches_value(operator, value, expected, fake_schema):
    assert operator.match(ScimData(value), fake_schema) is expected


@pytest.mark.parametrize(
    ("operator", "expected"),
    (
        (And(Equal(AttrRep(attr="str"), "a"), Present(AttrRep(attr="int"))), True),
        (And(Equal(AttrRep(attr="str"), "a"), Equal(AttrRep(attr="int"), 2)), False),
        (Or(Equal(AttrRep(attr="str"), "b"), Equal(AttrRep(attr="int"), 1)), True),
        (Or(Equal(AttrRep(attr="str"), "b"), Equal(AttrRep(attr="int"), 2)), False),
        (Not(Equal(AttrRep(attr="str"), "b")), True),
        (Not(And(Equal(AttrRep(attr="str"), "a"), Present(AttrRep(attr="int")))), False),
    ),
)
def test_logical_operator_matches_value(operator, expected, fake_schema):
    assert operator.match(ScimData({"str": "a", "int": 1}), fake_schema) is expected


@pytest.mark.parametrize(
    ("operator", "value", "expected"),
    (
        (
            ComplexAttributeOperator(AttrRep(attr="c_mv"), Equal(AttrRep(attr="type"), "WORK")),
            {"c_mv": [{"type": "home"}, {"type": "work"}]},
            True,
        ),
        (
            ComplexAttributeOperator(
                AttrRep(attr="c_mv"),
                And(Equal(AttrRep(attr="type"), "work"), Equal(AttrRep(attr="primary"), True)),
            ),
            {"c_mv": [{"type": "work"}, {"type": "home", "primary": True}]},
            False,
        ),
        (
            ComplexAttributeOperator(AttrRep(attr="c"), Equal(AttrRep(attr="value"), "x")),
            {"c": {"value": "x"}},
            True,
        ),
        (
            ComplexAttributeOperator(AttrRep(attr="c"), Equal(AttrRep(attr="value"), "x")),
            {"c": [{"value": "x"}]},
            False,
        ),
        (
            ComplexAttributeOperator(AttrRep(attr="str"), Equal(AttrRep(attr="value"), "x")),
            {"str": "x"},
            False,
        ),
    ),
)
def test_complex_attribute_operator_matches_value(operator, value, expected, fake_schema):
    assert operator.match(ScimData(value), fake_schema) is expected


def test_operator_value_of_unsupported_type_is_rejected():
    with pytest.raises(TypeError, match="value type 'list' is not supported by 'eq' operator"):
        Equal(AttrRep(attr="str"), ["a"])

    with pytest.raises(TypeError, match="value type 'int' is not supported by 'co' operator"):
        Contains(AttrRep(attr="str"), 1)
