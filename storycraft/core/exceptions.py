"""
Custom exception hierarchy for StoryCraft.
Provides structured error handling with proper HTTP status codes.
"""

from typing import Any, Optional


class StoryCraftError(Exception):
    """Base exception for all StoryCraft errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[dict[str, Any]] = None,
        status_code: int = 500,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(StoryCraftError):
    """Request validation failed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details=details,
            status_code=400,
        )


class InvalidRequestError(ValidationError):
    """Invalid request parameters."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message=message, details=details)
        self.code = "INVALID_REQUEST"


# =============================================================================
# Authentication/Authorization Errors (401, 403)
# =============================================================================


class AuthenticationError(StoryCraftError):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            message=message,
            code="AUTHENTICATION_REQUIRED",
            status_code=401,
        )


class InactiveAccountError(AuthenticationError):
    """The account exists but has been deactivated."""

    def __init__(self, message: str = "Account is deactivated") -> None:
        super().__init__(message=message)
        self.code = "ACCOUNT_DEACTIVATED"


class AuthorizationError(StoryCraftError):
    """Authorization failed - insufficient permissions."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        required: Optional[list[str]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code="AUTHORIZATION_FAILED",
            details={"required": required} if required else None,
            status_code=403,
        )


# =============================================================================
# Not Found Errors (404)
# =============================================================================


class NotFoundError(StoryCraftError):
    """Requested resource not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        msg = message or f"{resource_type} not found"
        if resource_id and not message:
            msg = f"{resource_type} with ID '{resource_id}' not found"

        super().__init__(
            message=msg,
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
            status_code=404,
        )


class UserNotFoundError(NotFoundError):
    """User not found."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        super().__init__(resource_type="User", resource_id=user_id, message="User not found")
        self.code = "USER_NOT_FOUND"


class ProposalNotFoundError(NotFoundError):
    """Proposal not found."""

    def __init__(self, proposal_id: str) -> None:
        super().__init__(resource_type="Proposal", resource_id=proposal_id)
        self.code = "PROPOSAL_NOT_FOUND"


class UserStoryNotFoundError(NotFoundError):
    """Generated user story not found."""

    def __init__(self, story_id: str) -> None:
        super().__init__(resource_type="UserStory", resource_id=story_id)
        self.code = "USER_STORY_NOT_FOUND"


class EpicNotFoundError(NotFoundError):
    """Generated epic not found."""

    def __init__(self, epic_id: str) -> None:
        super().__init__(resource_type="Epic", resource_id=epic_id)
        self.code = "EPIC_NOT_FOUND"


# =============================================================================
# Conflict Errors (409)
# =============================================================================


class ConflictError(StoryCraftError):
    """Resource state conflicts with the request."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            code="CONFLICT",
            details=details,
            status_code=409,
        )


class UserAlreadyExistsError(ConflictError):
    """A user with the same email is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__(
            message="User with this email already exists",
            details={"email": email},
        )
        self.code = "USER_ALREADY_EXISTS"


# =============================================================================
# Business Logic Errors (422)
# =============================================================================


class BusinessLogicError(StoryCraftError):
    """Business logic validation failed."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            code="BUSINESS_LOGIC_ERROR",
            details=details,
            status_code=422,
        )


class WorkflowError(BusinessLogicError):
    """Operation not allowed in the current workflow state."""

    def __init__(
        self,
        workflow_name: str,
        step: Optional[str] = None,
        message: str = "Workflow step failed",
    ) -> None:
        details = {"workflow": workflow_name}
        if step:
            details["step"] = step

        super().__init__(message=message, details=details)
        self.code = "WORKFLOW_ERROR"


# =============================================================================
# External Service Errors (502)
# =============================================================================


class ExternalServiceError(StoryCraftError):
    """Error communicating with external service."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=f"{service_name} error: {message}",
            code="EXTERNAL_SERVICE_ERROR",
            details={"service": service_name, **(details or {})},
            status_code=502,
        )


class DatabaseError(ExternalServiceError):
    """Error communicating with database."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(service_name="Database", message=message, details=details)
        self.code = "DATABASE_ERROR"
