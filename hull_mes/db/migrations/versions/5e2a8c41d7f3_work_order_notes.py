"""Work order notes.

- work_order_notes (GENERAL or DEPARTMENT scope)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5e2a8c41d7f3"
down_revision: Union[str, None] = "3c1d9e7a5b20"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "work_order_notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("work_order_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("scope", sa.String(length=16), nullable=False, server_default="GENERAL"),
        sa.Column("department_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["work_order_id"], ["work_orders.id"],
            name="fk_work_order_notes_work_order_id_work_orders", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_work_order_notes_user_id_users", ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["department_id"], ["departments.id"],
            name="fk_work_order_notes_department_id_departments", ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_work_order_notes"),
    )
    op.create_index("ix_work_order_notes_work_order_id", "work_order_notes", ["work_order_id"])


def downgrade() -> None:
    op.drop_index("ix_work_order_notes_work_order_id", table_name="work_order_notes")
    op.drop_table("work_order_notes")
