"""
Core module exports.
"""
from .enums import (
    ReconcileMode,
    ChangeOperation,
    ConnectionState
)

from .exceptions import (
    BaseServiceError,
    StorageError,
    PartialReconciliationError,
    AuthError,
    InvalidCredentialsError,
    PermissionDeniedError,
    RegistrationError,
    IdentityServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    FeedDisconnected
)
