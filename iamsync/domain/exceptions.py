"""Domain exceptions for iamsync.

Defines domain-level exceptions for provisioning, secret generation and
event correlation. These exceptions are independent of infrastructure
concerns. Presentation layer maps them to HTTP responses in exception
handlers.
"""

from typing import Any


class IamSyncException(Exception):
    """Base exception for all iamsync errors.

    All custom exceptions inherit from this class to allow consistent
    error handling and logging. Presentation layer maps these to HTTP
    responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. principal_name, secret_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(IamSyncException):
    """Raised when input validation fails (e.g. empty name, malformed email)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundException(IamSyncException):
    """Raised when a lookup misses (principal, group, secret or secret version).

    Often transient while provisioning writes are not yet visible, so the
    correlator treats it as retryable.
    """

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'principal', 'secret').
            resource_id: The identifier that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class PolicyViolationException(IamSyncException):
    """Raised when no secret satisfying the complexity policy can be generated.

    Fatal and non-retryable: the operator must fix the policy.
    """

    def __init__(self, secret_id: str, reason: str) -> None:
        super().__init__(
            f"Secret policy for {secret_id} cannot be satisfied: {reason}",
            "POLICY_VIOLATION",
            {"secret_id": secret_id, "reason": reason},
        )


class UnknownPrincipalException(IamSyncException):
    """Raised when metadata is attached to a principal that does not exist yet."""

    def __init__(self, principal_name: str) -> None:
        """Initialize with the principal name.

        Args:
            principal_name: Principal the metadata was addressed to.
        """
        super().__init__(
            f"Cannot attach metadata to unknown principal: {principal_name}",
            "UNKNOWN_PRINCIPAL",
            {"principal_name": principal_name},
        )


class CorrelationTimeoutException(IamSyncException):
    """Raised when joining a creation event exhausts its retries or time budget."""

    def __init__(
        self,
        principal_name: str,
        event_id: str,
        attempts: int,
        last_error: str | None = None,
    ) -> None:
        """Initialize with event context.

        Args:
            principal_name: Principal named by the event.
            event_id: Delivery that could not be correlated.
            attempts: Number of join attempts made.
            last_error: Message of the last lookup failure, if any.
        """
        super().__init__(
            f"Correlation for {principal_name} timed out after {attempts} attempt(s)",
            "CORRELATION_TIMEOUT",
            {
                "principal_name": principal_name,
                "event_id": event_id,
                "attempts": attempts,
                "last_error": last_error,
            },
        )


class SinkRejectedException(IamSyncException):
    """Raised when the audit sink refuses a record."""

    def __init__(self, principal_name: str, reason: str) -> None:
        super().__init__(
            f"Audit sink rejected record for {principal_name}: {reason}",
            "SINK_REJECTED",
            {"principal_name": principal_name, "reason": reason},
        )


class LockTimeoutException(IamSyncException):
    """Raised when a keyed lock cannot be acquired within its bound."""

    def __init__(self, key: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Timed out after {timeout_seconds}s waiting for lock on {key}",
            "LOCK_TIMEOUT",
            {"key": key, "timeout_seconds": timeout_seconds},
        )


class SqlNotConfiguredException(IamSyncException):
    """Raised when the SQL registry is requested but DATABASE_URL is not configured."""

    def __init__(self) -> None:
        super().__init__(
            "SQL registry not configured. Set REGISTRY_BACKEND=postgres and DATABASE_URL.",
            "SQL_NOT_CONFIGURED",
            {},
        )
