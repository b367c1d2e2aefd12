import pytest

from scimpatch.data.filter import Filter
from scimpatch.data.identifiers import AttrName, AttrRep, BoundedAttrRep
from scimpatch.data.operator import ComplexAttributeOperator, Equal
from scimpatch.data.patch_path import PatchPath
from tests.conftest import ENTERPRISE_USER, GROUP_SCHEMA


@pytest.mark.parametrize(
    ("path", "expected"),
    (
        ("members", PatchPath(attr_rep=AttrRep(attr="members"))),
        (
            "name.familyName",
            PatchPath(attr_rep=AttrRep(attr="name"), sub_attr_name="familyName"),
        ),
        (
            'addresses[type eq "work"]',
            PatchPath(
                attr_rep=AttrRep(attr="addresses"),
                filter_=Filter(
                    ComplexAttributeOperator(
                        attr_rep=AttrRep(attr="addresses"),
                        sub_operator=Equal(AttrRep(attr="type"), "work"),
                    )
                ),
            ),
        ),
        (
            'members[value eq "2819c223-7f76-453a-919d-413861904646"].display',
            PatchPath(
                attr_rep=AttrRep(attr="members"),
                sub_attr_name="display",
                filter_=Filter(
                    ComplexAttributeOperator(
                        attr_rep=AttrRep(attr="members"),
                        sub_operator=Equal(
                            AttrRep(attr="value"), "2819c223-7f76-453a-919d-413861904646"
                        ),
                    )
                ),
            ),
        ),
        (
            f"{GROUP_SCHEMA}:members",
            PatchPath(attr_rep=BoundedAttrRep(schema=GROUP_SCHEMA, attr="members")),
        ),
        (
            f"{ENTERPRISE_USER}:manager.value",
            PatchPath(
                attr_rep=BoundedAttrRep(schema=ENTERPRISE_USER, attr="manager"),
                sub_attr_name="value",
            ),
        ),
    ),
)
def test_patch_path_is_deserialized(path, expected):
    assert PatchPath.deserialize(path) == expected


@pytest.mark.parametrize(
    "path",
    (
        "bad^attr",
        "attr.bad^sub_attr",
        "attr[",
        "attr]",
        "attr[[]",
        "attr[]]",
        "attr]value eq 1[",
        "attr[]",
        "attr[value eq]",
        "attr[value eq abc]",
        "attr[value eq 1].sub_attr.sub_sub_attr",
        'attr[value eq 1] or other[value eq 2]',
        "attr.sub_attr[value eq 1]",
    ),
)
def test_invalid_patch_path_is_not_deserialized(path):
    with pytest.raises(ValueError, match="invalid path expression"):
        PatchPath.deserialize(path)


def test_patch_path_with_sub_attr_rep_can_not_be_created():
    with pytest.raises(ValueError, match="'attr_rep' must not be a sub attribute"):
        PatchPath(attr_rep=AttrRep(attr="name", sub_attr="givenName"))


def test_patch_path_with_filter_for_other_attr_can_not_be_created():
    with pytest.raises(ValueError, match="provided filter is configured for"):
        PatchPath(
            attr_rep=AttrRep(attr="emails"),
            filter_=Filter.deserialize('addresses[type eq "work"]'),
        )


@pytest.mark.parametrize(
    "path",
    (
        "members",
        "name.familyName",
        'emails[type eq "work"]',
        f"{ENTERPRISE_USER}:manager.value",
    ),
)
def test_patch_path_serialization_is_reversible(path):
    assert PatchPath.deserialize(path).serialize() == path


def test_target_rep_points_to_sub_attribute():
    path = PatchPath.deserialize('emails[type eq "work"].value')

    assert path.target_rep == AttrRep(attr="emails", sub_attr="value")
    assert path.sub_attr_name == AttrName("value")
    assert path.has_filter


@pytest.mark.parametrize(
    ("path", "item", "expected"),
    (
        ('emails[type eq "work"]', {"type": "work", "value": "a@b.com"}, True),
        ('emails[type eq "work"]', {"type": "home", "value": "a@b.com"}, False),
        ('emails[type eq "work"]', "a@b.com", False),
        ('emails[value ew "@b.com"].type', {"value": "a@b.com"}, True),
    ),
)
def test_patch_path_matches_multi_valued_complex_items(path, item, expected, user_schema):
    assert PatchPath.deserialize(path)(item, user_schema) is expected


@pytest.mark.parametrize(
    ("path", "item", "expected"),
    (
        ('str_mv[value eq "abc"]', "ABC", True),
        ('str_mv[value eq "abc"]', "def", False),
        ("int_mv[value ge 42]", 42, True),
        ("int_mv[value ge 42]", 41, False),
    ),
)
def test_patch_path_matches_multi_valued_simple_items(path, item, expected, fake_schema):
    assert PatchPath.deserialize(path)(item, fake_schema) is expected


def test_calling_path_without_filter_fails(user_schema):
    with pytest.raises(AttributeError, match="path has no value selection filter"):
        PatchPath.deserialize("emails")({"value": "a@b.com"}, user_schema)


def test_calling_path_for_unknown_attribute_fails(user_schema):
    with pytest.raises(ValueError, match="path does not target any attribute"):
        PatchPath.deserialize('unknown[value eq "x"]')("x", user_schema)
