"""
Application exceptions.

Each class fixes an HTTP status, a default message and whether the caller
should retry. Context passed as keyword arguments ends up in ``details``
(minus anything that looks like a credential).

Lost races and replays are NOT exceptions. Conditional writes report them
as a False return value and callers treat them as success.
"""

from typing import Any, Dict, Optional

SENSITIVE_CONTEXT_KEYS = frozenset({"password", "token", "secret", "key", "api_key", "signature"})


class AppException(Exception):
    """Root of every error the API renders itself."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"
    retryable: bool = False

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        details = {
            k: v for k, v in self.context.items() if k.lower() not in SENSITIVE_CONTEXT_KEYS
        }
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "details": details or None,
        }


# --- caller identity ---------------------------------------------------------


class AuthenticationError(AppException):
    """Missing or bad bearer token, or a wrong identity hook secret (401)."""

    status_code = 401
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    default_message = "Token is invalid"


class AuthorizationError(AppException):
    """Authenticated, but the role does not allow the action (403)."""

    status_code = 403
    default_message = "You do not have permission to perform this action"


# --- input and missing rows --------------------------------------------------


class ValidationError(AppException):
    status_code = 400
    default_message = "Validation failed"


class ResourceNotFoundError(AppException):
    """
    A referenced organization, user or invite does not exist (404).

    Fatal for the current invocation; never retried automatically.
    """

    status_code = 404
    default_message = "Resource not found"


class OrganizationNotFoundError(ResourceNotFoundError):
    default_message = "Organization not found"


class UserNotFoundError(ResourceNotFoundError):
    """The authenticated identity was never onboarded."""

    default_message = "User not found"


class InviteNotFoundError(ResourceNotFoundError):
    default_message = "Invite not found"


# --- seats ---------------------------------------------------------------------


class BusinessRuleViolation(AppException):
    status_code = 422
    default_message = "Business rule violation"


class SeatLimitExceededError(BusinessRuleViolation):
    """An invite batch asks for more seats than remain; nothing was invited."""

    default_message = "Not enough seats available"

    def __init__(self, seats_available: int, requested: int, **context: Any):
        self.seats_available = seats_available
        self.requested = requested
        super().__init__(
            message=f"Only {seats_available} seat(s) available",
            seats_available=seats_available,
            requested=requested,
            **context,
        )


# --- tenant storage ----------------------------------------------------------


class ProvisioningPending(AppException):
    """
    Tenant storage did not become active within the poll budget.

    A normal transient state: rendered as 503 with a Retry-After header and
    the machine-readable code TENANT_STORAGE_PROVISIONING.
    """

    status_code = 503
    default_message = "Tenant storage is still being provisioned"
    retryable = True
    code = "TENANT_STORAGE_PROVISIONING"

    def __init__(self, retry_after: int, resource_name: Optional[str] = None, **context: Any):
        self.retry_after = retry_after
        self.resource_name = resource_name
        super().__init__(resource_name=resource_name, **context)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["code"] = self.code
        data["retry_after_seconds"] = self.retry_after
        return data


# --- upstream services and the store -----------------------------------------


class ExternalServiceError(AppException):
    status_code = 502
    default_message = "External service error"
    retryable = True


class IdentityDirectoryError(ExternalServiceError):
    default_message = "Identity directory error"


class TenantStorageError(ExternalServiceError):
    """Storage backend failure other than "creation in progress"."""

    default_message = "Tenant storage error"


class StripeError(ExternalServiceError):
    """Webhook payload could not be verified; Stripe should not retry it as-is."""

    status_code = 400
    default_message = "Payment processing error"
    retryable = False


class DatabaseError(AppException):
    """
    The tenant store failed (503).

    Retryable: every write is a conditional write, so a redelivered trigger
    or webhook converges.
    """

    status_code = 503
    default_message = "Database temporarily unavailable"
    retryable = True
