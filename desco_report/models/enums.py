"""Enum definitions shared by models and services."""

from enum import Enum


class RoleName(str, Enum):
    """Roles seeded at start-up."""

    ADMIN = "Admin"
    USER = "User"
    MANAGER = "Manager"


class SyncStatus(str, Enum):
    """Overall outcome of an account sync."""

    COMPLETED = "completed"
    FAILED = "failed"


class SyncStepStatus(str, Enum):
    """Outcome of one fetch-and-reconcile step."""

    SUCCEEDED = "succeeded"
    EMPTY = "empty"  # Provider returned no data
    SKIPPED = "skipped"  # No stored account to attach records to
    FAILED = "failed"
