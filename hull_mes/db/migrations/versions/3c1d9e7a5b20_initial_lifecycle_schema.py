"""Initial work-order lifecycle schema.

- departments, work_centers, stations
- users
- routing_definitions, routing_stages
- work_orders (held_from_status, row_version)
- stage_events
- work_order_versions
- audit_log
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols


def upgrade() -> None:
    # Reference data
    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_departments"),
        sa.UniqueConstraint("code", name="uq_departments_code"),
    )
    op.create_table(
        "work_centers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["department_id"], ["departments.id"],
            name="fk_work_centers_department_id_departments", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_work_centers"),
        sa.UniqueConstraint("code", name="uq_work_centers_code"),
    )
    op.create_index("ix_work_centers_department_id", "work_centers", ["department_id"])
    op.create_table(
        "stations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("work_center_id", sa.Uuid(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["work_center_id"], ["work_centers.id"],
            name="fk_stations_work_center_id_work_centers", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_stations"),
        sa.UniqueConstraint("code", name="uq_stations_code"),
    )
    op.create_index("ix_stations_work_center_id", "stations", ["work_center_id"])

    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["department_id"], ["departments.id"],
            name="fk_users_department_id_departments", ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # Routing
    op.create_table(
        "routing_definitions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("trim", sa.Text(), nullable=True),
        sa.Column("features", JSONType, nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_routing_definitions"),
        sa.UniqueConstraint("model", "trim", "version", name="uq_routing_definitions_model_trim_version"),
    )
    op.create_table(
        "routing_stages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("routing_definition_id", sa.Uuid(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("work_center_id", sa.Uuid(), nullable=False),
        sa.Column("standard_stage_seconds", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["routing_definition_id"], ["routing_definitions.id"],
            name="fk_routing_stages_routing_definition_id_routing_definitions", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["work_center_id"], ["work_centers.id"],
            name="fk_routing_stages_work_center_id_work_centers", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_routing_stages"),
        sa.UniqueConstraint("routing_definition_id", "sequence", name="uq_routing_stages_definition_sequence"),
    )
    op.create_index("ix_routing_stages_routing_definition_id", "routing_stages", ["routing_definition_id"])

    # Work orders
    op.create_table(
        "work_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("number", sa.Text(), nullable=False),
        sa.Column("hull_id", sa.Text(), nullable=False),
        sa.Column("product_sku", sa.Text(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("planned_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("planned_finish_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("spec_snapshot", JSONType, nullable=False),
        sa.Column("routing_definition_id", sa.Uuid(), nullable=False),
        sa.Column("current_stage_index", sa.Integer(), nullable=False),
        sa.Column("held_from_status", sa.String(length=16), nullable=True),
        sa.Column("row_version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["routing_definition_id"], ["routing_definitions.id"],
            name="fk_work_orders_routing_definition_id_routing_definitions", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_work_orders"),
        sa.UniqueConstraint("number", name="uq_work_orders_number"),
    )
    op.create_index("ix_work_orders_hull_id", "work_orders", ["hull_id"])
    op.create_index("ix_work_orders_status", "work_orders", ["status"])

    op.create_table(
        "stage_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("work_order_id", sa.Uuid(), nullable=False),
        sa.Column("routing_stage_id", sa.Uuid(), nullable=False),
        sa.Column("station_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("event", sa.String(length=16), nullable=False),
        sa.Column("good_qty", sa.Numeric(18, 6), nullable=True),
        sa.Column("scrap_qty", sa.Numeric(18, 6), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["work_order_id"], ["work_orders.id"],
            name="fk_stage_events_work_order_id_work_orders", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["routing_stage_id"], ["routing_stages.id"],
            name="fk_stage_events_routing_stage_id_routing_stages", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["station_id"], ["stations.id"],
            name="fk_stage_events_station_id_stations", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_stage_events_user_id_users", ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_stage_events"),
    )
    op.create_index("ix_stage_events_work_order_id", "stage_events", ["work_order_id"])

    # History
    op.create_table(
        "work_order_versions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("work_order_id", sa.Uuid(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("snapshot_data", JSONType, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["work_order_id"], ["work_orders.id"],
            name="fk_work_order_versions_work_order_id_work_orders", ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_work_order_versions"),
        sa.UniqueConstraint("work_order_id", "version_number", name="uq_work_order_versions_work_order_version"),
    )
    op.create_index("ix_work_order_versions_work_order_id", "work_order_versions", ["work_order_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("model", sa.Text(), nullable=False),
        sa.Column("model_id", sa.Uuid(), nullable=False),
        sa.Column("before", JSONType, nullable=True),
        sa.Column("after", JSONType, nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_model_id", "audit_log", ["model_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_model_id", table_name="audit_log")
    op.drop_index("ix_audit_log_action", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_work_order_versions_work_order_id", table_name="work_order_versions")
    op.drop_table("work_order_versions")
    op.drop_index("ix_stage_events_work_order_id", table_name="stage_events")
    op.drop_table("stage_events")
    op.drop_index("ix_work_orders_status", table_name="work_orders")
    op.drop_index("ix_work_orders_hull_id", table_name="work_orders")
    op.drop_table("work_orders")
    op.drop_index("ix_routing_stages_routing_definition_id", table_name="routing_stages")
    op.drop_table("routing_stages")
    op.drop_table("routing_definitions")
    op.drop_table("users")
    op.drop_index("ix_stations_work_center_id", table_name="stations")
    op.drop_table("stations")
    op.drop_index("ix_work_centers_department_id", table_name="work_centers")
    op.drop_table("work_centers")
    op.drop_table("departments")
