import pytest

from scimpatch.config import PatchConfig
from scimpatch.data.attrs import (
    AttributeMutability,
    Boolean,
    Complex,
    Integer,
    String,
)
from scimpatch.data.schemas import ResourceSchema
from scimpatch.schemas import EnterpriseUserSchemaExtension, GroupSchema, UserSchema

USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
GROUP_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:Group"
ENTERPRISE_USER = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"


class FakeSchema(ResourceSchema):
    schema = "schema:for:tests"
    name = "FakeSchema"
    plural_name = "SchemasForTests"
    base_attrs = [
        Integer("int"),
        String("str"),
        String("str_cs", case_exact=True),
        String("str_mv", multi_valued=True),
        Integer("int_mv", multi_valued=True),
        String("str_imm", mutability=AttributeMutability.IMMUTABLE),
        String("str_ro", mutability=AttributeMutability.READ_ONLY),
        Complex(
            "c",
            sub_attributes=[
                String("value"),
                String("imm", mutability=AttributeMutability.IMMUTABLE),
                String("ro", mutability=AttributeMutability.READ_ONLY),
                String("tags", multi_valued=True),
            ],
        ),
        Complex(
            "c_mv",
            multi_valued=True,
            sub_attributes=[
                String("value"),
                String("type"),
                Boolean("primary"),
                String("tags", multi_valued=True),
                String("imm", mutability=AttributeMutability.IMMUTABLE),
            ],
        ),
        Complex(
            "c_mv_imm",
            multi_valued=True,
            mutability=AttributeMutability.IMMUTABLE,
            sub_attributes=[String("value"), Boolean("primary")],
        ),
    ]


_user_schema = UserSchema()
_user_schema.extend(EnterpriseUserSchemaExtension())
_group_schema = GroupSchema()
_fake_schema = FakeSchema()


@pytest.fixture(scope="session")
def user_schema() -> UserSchema:
    return _user_schema


@pytest.fixture(scope="session")
def group_schema() -> GroupSchema:
    return _group_schema


@pytest.fixture(scope="session")
def fake_schema() -> FakeSchema:
    return _fake_schema


@pytest.fixture
def config() -> PatchConfig:
    return PatchConfig.create()


@pytest.fixture
def user_data():
    return {
        "schemas": [USER_SCHEMA, ENTERPRISE_USER],
        "id": "2819c223-7f76-453a-919d-413861904646",
        "externalId": "1",
        "userName": "bjensen@example.com",
        "name": {
            "formatted": "Ms. Barbara J Jensen, III",
            "familyName": "Jensen",
            "givenName": "Barbara",
        },
        "displayName": "Babs Jensen",
        "nickName": "Babs",
        "emails": [
            {"value": "bjensen@example.com", "type": "work", "primary": True},
            {"value": "babs@jensen.org", "type": "home"},
        ],
        "phoneNumbers": [
            {"value": "555-555-5555", "type": "work"},
            {"value": "555-555-4444", "type": "mobile"},
        ],
        "groups": [
            {
                "value": "e9e30dba-f08f-4109-8486-d5c6a331660a",
                "$ref": "https://example.com/v2/Groups/e9e30dba-f08f-4109-8486-d5c6a331660a",
                "display": "Tour Guides",
            },
        ],
        "active": True,
        ENTERPRISE_USER: {
            "employeeNumber": "701984",
            "costCenter": "4130",
            "manager": {
                "value": "26118915-6090-4610-87e4-49d8ca9f808d",
                "displayName": "John Smith",
            },
        },
        "meta": {
            "resourceType": "User",
            "created": "2010-01-23T04:56:22Z",
            "lastModified": "2011-05-13T04:42:34Z",
            "version": 'W\\/"3694e05e9dff590"',
            "location": "https://example.com/v2/Users/2819c223-7f76-453a-919d-413861904646",
        },
    }


@pytest.fixture
def group_data():
    return {
        "schemas": [GROUP_SCHEMA],
        "id": "e9e30dba-f08f-4109-8486-d5c6a331660a",
        "displayName": "Tour Guides",
        "members": [
            {
                "value": "2819c223-7f76-453a-919d-413861904646",
                "$ref": "https://example.com/v2/Users/2819c223-7f76-453a-919d-413861904646",
                "display": "Babs Jensen",
            },
            {
                "value": "42",
                "$ref": "https://example.com/v2/Users/42",
                "display": "Mandy Pepperidge",
            },
        ],
        "meta": {
            "resourceType": "Group",
            "created": "2010-01-23T04:56:22Z",
            "lastModified": "2011-05-13T04:42:34Z",
        },
    }
