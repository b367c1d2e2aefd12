import pytest

from scimpatch.data.identifiers import AttrRep, BoundedAttrRep
from scimpatch.data.scim_data import Missing, ScimData
from tests.conftest import ENTERPRISE_USER, USER_SCHEMA


@pytest.mark.parametrize(
    ("key", "expected"),
    (
        ("id", "2819c223-7f76-453a-919d-413861904646"),
        ("USERNAME", "bjensen@example.com"),
        (AttrRep(attr="userName"), "bjensen@example.com"),
        (BoundedAttrRep(schema=USER_SCHEMA, attr="userName"), "bjensen@example.com"),
        (AttrRep(attr="meta", sub_attr="resourceType"), "User"),
        (AttrRep(attr="name", sub_attr="GIVENNAME"), "Barbara"),
        (AttrRep(attr="emails", sub_attr="type"), ["work", "home"]),
        (
            BoundedAttrRep(schema=ENTERPRISE_USER, attr="employeeNumber", extension=True),
            "701984",
        ),
        (
            BoundedAttrRep(
                schema=ENTERPRISE_USER, attr="manager", sub_attr="displayName", extension=True
            ),
            "John Smith",
        ),
        (AttrRep(attr="nonexisting"), Missing),
        (AttrRep(attr="userName", sub_attr="value"), Missing),
    ),
)
def test_value_can_be_retrieved_from_scim_data(key, expected, user_data):
    assert ScimData(user_data).get(key) == expected


@pytest.mark.parametrize(
    ("key", "value", "expected"),
    (
        ("userName", "bjensen", {"userName": "bjensen"}),
        (AttrRep(attr="name", sub_attr="givenName"), "Max", {"name": {"givenName": "Max"}}),
        (
            BoundedAttrRep(schema=ENTERPRISE_USER, attr="costCenter", extension=True),
            "CC1",
            {ENTERPRISE_USER: {"costCenter": "CC1"}},
        ),
        (
            BoundedAttrRep(
                schema=ENTERPRISE_USER, attr="manager", sub_attr="value", extension=True
            ),
            "42",
            {ENTERPRISE_USER: {"manager": {"value": "42"}}},
        ),
        (
            BoundedAttrRep(schema=USER_SCHEMA, attr="name", sub_attr="familyName"),
            "Doe",
            {"name": {"familyName": "Doe"}},
        ),
    ),
)
def test_value_can_be_set_in_empty_scim_data(key, value, expected):
    data = ScimData()

    data.set(key, value)

    assert data.to_dict() == expected


def test_setting_existing_key_keeps_its_original_casing():
    data = ScimData({"userName": "bjensen"})

    data["USERNAME"] = "babs"

    assert data.to_dict() == {"userName": "babs"}


def test_sub_attribute_can_not_be_set_under_non_object_value():
    data = ScimData({"userName": "bjensen"})

    with pytest.raises(KeyError, match="can not nest values under 'userName'"):
        data.set(AttrRep(attr="userName", sub_attr="value"), "x")


def test_nested_mappings_are_converted_to_scim_data():
    data = ScimData({"emails": [{"value": "a@b.com"}], "name": {"givenName": "Max"}})

    assert isinstance(data["name"], ScimData)
    assert isinstance(data["emails"][0], ScimData)
    assert data.get(AttrRep(attr="EMAILS", sub_attr="VALUE")) == ["a@b.com"]


def test_value_can_be_popped_from_scim_data(user_data):
    data = ScimData(user_data)

    assert data.pop(AttrRep(attr="name", sub_attr="givenName")) == "Barbara"
    assert data.pop(
        BoundedAttrRep(schema=ENTERPRISE_USER, attr="costCenter", extension=True)
    ) == "4130"
    assert data.pop("nickname") == "Babs"
    assert data.pop("nickName") is Missing

    output = data.to_dict()
    assert "givenName" not in output["name"]
    assert "costCenter" not in output[ENTERPRISE_USER]
    assert "nickName" not in output


def test_deleting_missing_key_raises_key_error():
    data = ScimData()

    with pytest.raises(KeyError):
        del data["userName"]


def test_scim_data_equality_is_case_insensitive():
    assert ScimData({"userName": "bjensen", "name": {"givenName": "Max"}}) == {
        "USERNAME": "bjensen",
        "NAME": {"GIVENNAME": "Max"},
    }
    assert ScimData({"userName": "bjensen"}) != {"userName": "babs"}
    assert ScimData({"userName": "bjensen"}) != "bjensen"


def test_contains_checks_key_case_insensitively(user_data):
    data = ScimData(user_data)

    assert "USERNAME" in data
    assert AttrRep(attr="name", sub_attr="familyName") in data
    assert "title" not in data
    assert 42 not in data
