import pytest

from scimpatch.data.filter import Filter
from scimpatch.data.identifiers import AttrRep
from scimpatch.data.operator import (
    And,
    ComplexAttributeOperator,
    Equal,
    GreaterThan,
    Not,
    Or,
    Present,
    StartsWith,
)


@pytest.mark.parametrize(
    ("filter_exp", "expected"),
    (
        ('type eq "work"', Filter(Equal(AttrRep(attr="type"), "work"))),
        ("type pr", Filter(Present(AttrRep(attr="type")))),
        ("int gt 1", Filter(GreaterThan(AttrRep(attr="int"), 1))),
        ("primary eq true", Filter(Equal(AttrRep(attr="primary"), True))),
        ('value sw "J"', Filter(StartsWith(AttrRep(attr="value"), "J"))),
        (
            'type eq "work" and primary eq true',
            Filter(
                And(
                    Equal(AttrRep(attr="type"), "work"),
                    Equal(AttrRep(attr="primary"), True),
                )
            ),
        ),
        (
            'type eq "work" or type eq "home"',
            Filter(
                Or(
                    Equal(AttrRep(attr="type"), "work"),
                    Equal(AttrRep(attr="type"), "home"),
                )
            ),
        ),
        ('not (type eq "work")', Filter(Not(Equal(AttrRep(attr="type"), "work")))),
        (
            'emails[type eq "work"]',
            Filter(
                ComplexAttributeOperator(
                    attr_rep=AttrRep(attr="emails"),
                    sub_operator=Equal(AttrRep(attr="type"), "work"),
                )
            ),
        ),
        (
            'value eq "a or b"',
            Filter(Equal(AttrRep(attr="value"), "a or b")),
        ),
    ),
)
def test_filter_is_deserialized(filter_exp, expected):
    assert Filter.deserialize(filter_exp) == expected


@pytest.mark.parametrize(
    "filter_exp",
    (
        "",
        "type eq",
        "type unknown 1",
        "type eq abc",
        'type eq "work" and',
        'emails.type[value eq "x"]',
    ),
)
def test_invalid_filter_is_not_deserialized(filter_exp):
    with pytest.raises(ValueError, match="invalid filter expression"):
        Filter.deserialize(filter_exp)


@pytest.mark.parametrize(
    "filter_exp",
    (
        'type eq "work"',
        "primary eq true",
        'type eq "work" and value sw "bjensen"',
        'emails[type eq "work"]',
    ),
)
def test_filter_serialization_is_reversible(filter_exp):
    assert Filter.deserialize(filter_exp).serialize() == filter_exp


@pytest.mark.parametrize(
    ("filter_exp", "item", "expected"),
    (
        ('type eq "work"', {"type": "work", "value": "a@b.com"}, True),
        ('type eq "work"', {"type": "WORK", "value": "a@b.com"}, True),
        ('type eq "work"', {"type": "home", "value": "a@b.com"}, False),
        ('type eq "work"', {"value": "a@b.com"}, False),
        ("primary eq true", {"primary": True}, True),
        ("primary eq true", {"primary": False}, False),
        ("type pr", {"type": "work"}, True),
        ("type pr", {"type": ""}, False),
        ('value ew "example.com"', {"value": "bjensen@example.com"}, True),
        ('value co "jensen"', {"value": "bjensen@example.com"}, True),
        ('type eq "work" and primary eq true', {"type": "work", "primary": True}, True),
        ('type eq "work" and primary eq true', {"type": "work"}, False),
        ('type eq "work" or type eq "home"', {"type": "home"}, True),
        ('not (type eq "work")', {"type": "home"}, True),
        ('not (type eq "work")', {"type": "work"}, False),
        ('unknown eq "work"', {"unknown": "work"}, False),
    ),
)
def test_filter_matches_multi_valued_complex_item(filter_exp, item, expected, user_schema):
    emails = user_schema.attrs.get("emails")

    assert Filter.deserialize(filter_exp)(item, emails) is expected


def test_filter_matches_resource_with_value_selection(user_data, user_schema):
    assert Filter.deserialize('emails[type eq "work"]')(user_data, user_schema) is True
    assert Filter.deserialize('emails[type eq "other"]')(user_data, user_schema) is False


def test_attr_reps_are_collected_in_order_of_appearance():
    filter_ = Filter.deserialize('type eq "work" and (value pr or type eq "home")')

    assert filter_.attr_reps == [AttrRep(attr="type"), AttrRep(attr="value")]


def test_filter_can_be_converted_to_dict():
    filter_ = Filter.deserialize('emails[type eq "work" and not (primary eq true)]')

    assert filter_.to_dict() == {
        "op": "complex",
        "attr": "emails",
        "sub_op": {
            "op": "and",
            "sub_ops": [
                {"op": "eq", "attr": "type", "value": "work"},
                {"op": "not", "sub_op": {"op": "eq", "attr": "primary", "value": True}},
            ],
        },
    }
