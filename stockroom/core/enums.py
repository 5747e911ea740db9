"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ReconcileMode(str, Enum):
    """How far the delete phase of a reconciliation reaches"""
    UPSERT_SUBSET = "upsert_subset"  # only codes present in the input
    REPLACE_ALL = "replace_all"      # every row of the owner


class ChangeOperation(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ConnectionState(str, Enum):
    """Lifecycle of a realtime client connection"""
    OPEN = "open"
    REGISTERED = "registered"
    CLOSED = "closed"
