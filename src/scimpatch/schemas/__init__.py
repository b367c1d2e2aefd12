from scimpatch.schemas.group import GroupSchema
from scimpatch.schemas.user import EnterpriseUserSchemaExtension, UserSchema

__all__ = [
    "GroupSchema",
    "UserSchema",
    "EnterpriseUserSchemaExtension",
]
