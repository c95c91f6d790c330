"""
ORM models for reference data (departments, work centers, stations, users),
routing definitions, work orders and their append-only history.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .reference import (  # noqa: F401
    Department,
    WorkCenter,
    Station,
)
from .security import User  # noqa: F401
from .routing import (  # noqa: F401
    RoutingDefinition,
    RoutingStage,
)
from .production import (  # noqa: F401
    WorkOrder,
    StageEvent,
)
from .history import (  # noqa: F401
    WorkOrderVersion,
    AuditLogEntry,
)
from .notes import WorkOrderNote  # noqa: F401
