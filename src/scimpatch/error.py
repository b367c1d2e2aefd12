from enum import Enum
from typing import Any, Optional, Union


class ScimErrorType(str, Enum):
    INVALID_FILTER = "invalidFilter"
    TOO_MANY = "tooMany"
    UNIQUENESS = "uniqueness"
    MUTABILITY = "mutability"
    INVALID_SYNTAX = "invalidSyntax"
    INVALID_PATH = "invalidPath"
    NO_TARGET = "noTarget"
    INVALID_VALUE = "invalidValue"
    INVALID_VERS = "invalidVers"
    SENSITIVE = "sensitive"


ERROR_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:Error"


_DEFAULT_DETAILS = {
    ScimErrorType.INVALID_FILTER: (
        "The specified filter syntax is invalid, "
        "or the specified attribute and filter comparison combination is not supported."
    ),
    ScimErrorType.MUTABILITY: (
        "The attempted modification is not compatible with the target attribute's mutability "
        "or current state."
    ),
    ScimErrorType.INVALID_SYNTAX: (
        "The request body message structure was invalid or did not conform to the request schema."
    ),
    ScimErrorType.INVALID_PATH: "The 'path' attribute was invalid or malformed.",
    ScimErrorType.NO_TARGET: (
        "The specified 'path' did not yield an attribute or attribute value "
        "that could be operated on."
    ),
    ScimErrorType.INVALID_VALUE: (
        "A required value was missing, or the value specified was not compatible "
        "with the operation or attribute type, or resource schema."
    ),
}


class ScimPatchError(Exception):
    """
    Base class for all errors that abort the whole PATCH request. Carries HTTP status,
    SCIM error type (`scimType`), and human-readable detail, so it can be rendered as
    SCIM error response.

    Args:
        detail: Human-readable explanation of the error. If not provided, the generic
            description of `scim_type` from RFC-7644 is used.
        scim_type: SCIM error type, as specified in RFC-7644, section 3.12.
    """

    status: str = "400"
    default_scim_type: Optional[ScimErrorType] = None

    def __init__(
        self,
        detail: Optional[str] = None,
        scim_type: Optional[Union[str, ScimErrorType]] = None,
    ):
        if scim_type is None:
            scim_type = self.default_scim_type
        self.scim_type = ScimErrorType(scim_type) if scim_type is not None else None
        if detail is None:
            detail = _DEFAULT_DETAILS.get(self.scim_type, "") if self.scim_type else ""
        self.detail = detail
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(scim_type={self.scim_type}, detail={self.detail!r})"

    def to_dict(self) -> dict[str, Any]:
        """
        Returns SCIM error response body for the error.
        """
        output: dict[str, Any] = {
            "schemas": [ERROR_SCHEMA],
            "status": self.status,
        }
        if self.scim_type is not None:
            output["scimType"] = self.scim_type.value
        if self.detail:
            output["detail"] = self.detail
        return output


class BadRequest(ScimPatchError):
    """
    Generic error for malformed PATCH requests. The SCIM error type is optional and depends
    on the exact reason.
    """


class InvalidValue(ScimPatchError):
    default_scim_type = ScimErrorType.INVALID_VALUE


class InvalidPath(ScimPatchError):
    default_scim_type = ScimErrorType.INVALID_PATH


class NoTarget(ScimPatchError):
    default_scim_type = ScimErrorType.NO_TARGET


class Mutability(ScimPatchError):
    default_scim_type = ScimErrorType.MUTABILITY


class IgnoreOperation(Exception):
    """
    Internal signal used to skip a single patch operation (or a single attribute of
    a pathless operation) without failing the request. Never leaves the processor.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
