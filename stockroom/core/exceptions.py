from typing import Any, Dict, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.public_message
        self.details = details or {}
        super().__init__(self.message)


class StorageError(BaseServiceError):
    """Raised when a read or write against the store fails."""
    public_message = "Storage operation failed"


class PartialReconciliationError(StorageError):
    """Raised when the insert phase fails after the delete phase was committed."""
    public_message = "Reconciliation left the product set incomplete"

    def __init__(self, owner_id: str, deleted_count: int, message: Optional[str] = None):
        self.owner_id = owner_id
        self.deleted_count = deleted_count
        super().__init__(
            message or f"Insert phase failed for owner {owner_id} after deleting {deleted_count} rows",
            details={"owner_id": owner_id, "deleted": deleted_count},
        )


class AuthError(BaseServiceError):
    """Missing, invalid or expired credential."""
    status_code = 401
    public_message = "Authentication required"


class InvalidCredentialsError(AuthError):
    """Email/password pair rejected at login."""
    status_code = 400
    public_message = "Invalid credentials"


class PermissionDeniedError(BaseServiceError):
    status_code = 403
    public_message = "Insufficient permissions"


class RegistrationError(BaseServiceError):
    """Sign-up rejected by the identity service."""
    status_code = 400
    public_message = "Error registering user"


class IdentityServiceError(BaseServiceError):
    """Identity service unreachable or failing."""
    status_code = 502
    public_message = "Identity service unavailable"


class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    status_code = 400
    public_message = "Invalid request data"


class NotFoundError(BaseServiceError):
    status_code = 404
    public_message = "Resource not found"


class ConflictError(BaseServiceError):
    status_code = 409
    public_message = "Resource already exists"


class FeedDisconnected(BaseServiceError):
    """The change-feed subscription dropped."""
    public_message = "Change feed disconnected"
