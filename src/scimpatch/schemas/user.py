import precis_i18n

from scimpatch.data.attrs import (
    Attribute,
    AttributeMutability,
    Binary,
    Boolean,
    Complex,
    ExternalReference,
    ScimReference,
    String,
    UriReference,
)
from scimpatch.data.schemas import ResourceSchema, SchemaExtension


def _multi_valued_sub_attrs(value_description: str) -> list[Attribute]:
    return [
        String(name="value", description=value_description),
        String(
            name="display",
            description="A human-readable name, primarily used for display purposes.",
        ),
        String(name="type", description="A label indicating the attribute's function."),
        Boolean(
            name="primary",
            description=(
                "A Boolean value indicating the 'primary' or preferred attribute value "
                "for this attribute. The primary attribute value 'true' MUST appear "
                "no more than once."
            ),
        ),
    ]


class UserSchema(ResourceSchema):
    schema = "urn:ietf:params:scim:schemas:core:2.0:User"
    name = "User"
    plural_name = "Users"
    endpoint = "/Users"
    description = "User Account"
    base_attrs: list[Attribute] = [
        String(
            name="userName",
            description=(
                "Unique identifier for the User, typically used by the user to directly "
                "authenticate to the service provider."
            ),
            precis=precis_i18n.get_profile("UsernameCaseMapped"),
            required=True,
        ),
        Complex(
            name="name",
            description="The components of the user's real name.",
            sub_attributes=[
                String(name="formatted", description="The full name, formatted for display."),
                String(name="familyName", description="The family name of the User."),
                String(name="givenName", description="The given name of the User."),
                String(name="middleName", description="The middle name(s) of the User."),
                String(name="honorificPrefix", description="The honorific prefix(es)."),
                String(name="honorificSuffix", description="The honorific suffix(es)."),
            ],
        ),
        String(
            name="displayName",
            description="The name of the User, suitable for display to end-users.",
        ),
        String(name="nickName", description="The casual way to address the user in real life."),
        ExternalReference(
            name="profileUrl",
            description="A fully qualified URL pointing to the User's online profile.",
        ),
        String(name="title", description="The user's title, such as 'Vice President'."),
        String(
            name="userType",
            description="Identifies the relationship between the organization and the user.",
        ),
        String(name="preferredLanguage", description="The User's preferred language."),
        String(name="locale", description="The User's default location."),
        String(name="timezone", description="The User's time zone in the 'Olson' format."),
        Boolean(name="active", description="The User's administrative status."),
        String(
            name="password",
            description="The User's cleartext password.",
            mutability=AttributeMutability.WRITE_ONLY,
        ),
        Complex(
            name="emails",
            description="Email addresses for the user.",
            multi_valued=True,
            sub_attributes=_multi_valued_sub_attrs("Email addresses for the user."),
        ),
        Complex(
            name="phoneNumbers",
            description="Phone numbers for the User.",
            multi_valued=True,
            sub_attributes=_multi_valued_sub_attrs("Phone number of the User."),
        ),
        Complex(
            name="ims",
            description="Instant messaging addresses for the User.",
            multi_valued=True,
            sub_attributes=_multi_valued_sub_attrs("Instant messaging address for the User."),
        ),
        Complex(
            name="photos",
            description="URLs of photos of the User.",
            multi_valued=True,
            sub_attributes=[
                ExternalReference(name="value", description="URL of a photo of the User."),
                String(name="display"),
                String(name="type", canonical_values=["photo", "thumbnail"]),
                Boolean(name="primary"),
            ],
        ),
        Complex(
            name="addresses",
            description="A physical mailing address for this User.",
            multi_valued=True,
            sub_attributes=[
                String(name="formatted"),
                String(name="streetAddress"),
                String(name="locality"),
                String(name="region"),
                String(name="postalCode"),
                String(name="country"),
                String(name="type", canonical_values=["work", "home", "other"]),
                Boolean(name="primary"),
            ],
        ),
        Complex(
            name="groups",
            description="A list of groups to which the user belongs.",
            multi_valued=True,
            mutability=AttributeMutability.READ_ONLY,
            sub_attributes=[
                String(name="value", mutability=AttributeMutability.READ_ONLY),
                UriReference(name="$ref", mutability=AttributeMutability.READ_ONLY),
                String(name="display", mutability=AttributeMutability.READ_ONLY),
                String(
                    name="type",
                    canonical_values=["direct", "indirect"],
                    mutability=AttributeMutability.READ_ONLY,
                ),
            ],
        ),
        Complex(
            name="entitlements",
            description="A list of entitlements for the User.",
            multi_valued=True,
            sub_attributes=_multi_valued_sub_attrs("The value of an entitlement."),
        ),
        Complex(
            name="roles",
            description="A list of roles for the User.",
            multi_valued=True,
            sub_attributes=_multi_valued_sub_attrs("The value of a role."),
        ),
        Complex(
            name="x509Certificates",
            description="A list of certificates issued to the User.",
            multi_valued=True,
            sub_attributes=[
                Binary(name="value", description="The value of an X.509 certificate."),
                String(name="display"),
                String(name="type"),
                Boolean(name="primary"),
            ],
        ),
    ]


class EnterpriseUserSchemaExtension(SchemaExtension):
    schema = "urn:ietf:params:scim:schemas:extension:enterprise:2.0:User"
    name = "EnterpriseUser"
    description = "Enterprise User"
    base_attrs: list[Attribute] = [
        String(
            name="employeeNumber",
            description="Identifier assigned to a person, typically based on order of hire.",
        ),
        String(name="costCenter", description="Identifies the name of a cost center."),
        String(name="organization", description="Identifies the name of an organization."),
        String(name="division", description="Identifies the name of a division."),
        String(name="department", description="Identifies the name of a department."),
        Complex(
            name="manager",
            description="The User's manager.",
            sub_attributes=[
                String(
                    name="value",
                    description="The id of the SCIM resource representing the User's manager.",
                ),
                ScimReference(
                    name="$ref",
                    description="The URI of the SCIM resource representing the User's manager.",
                    reference_types=["User"],
                ),
                String(
                    name="displayName",
                    description="The displayName of the User's manager.",
                    mutability=AttributeMutability.READ_ONLY,
                ),
            ],
        ),
    ]
