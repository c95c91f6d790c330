"""Enumerations shared by ORM models, schemas and services."""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"
    OPERATOR = "OPERATOR"


class WOStatus(str, Enum):
    PLANNED = "PLANNED"
    RELEASED = "RELEASED"
    IN_PROGRESS = "IN_PROGRESS"
    HOLD = "HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"


class WOPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class StageEventKind(str, Enum):
    START = "START"
    PAUSE = "PAUSE"
    COMPLETE = "COMPLETE"


class NoteScope(str, Enum):
    GENERAL = "GENERAL"
    DEPARTMENT = "DEPARTMENT"


class RoutingStatus(str, Enum):
    DRAFT = "DRAFT"
    RELEASED = "RELEASED"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    RELEASE = "RELEASE"
    HOLD = "HOLD"
    UNHOLD = "UNHOLD"
    PAUSE = "PAUSE"
    CANCEL = "CANCEL"
    UNCANCEL = "UNCANCEL"
    CLOSE = "CLOSE"
    RESTORE = "RESTORE"


# Statuses in which stage work (start/pause/complete) may be recorded.
WORKABLE_STATUSES = frozenset({WOStatus.RELEASED, WOStatus.IN_PROGRESS})
