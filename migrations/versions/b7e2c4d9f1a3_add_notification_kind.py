"""add notifications.kind

Revision ID: b7e2c4d9f1a3
Revises: a0c1e2d3f4b5
Create Date: 2026-10-20

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "b7e2c4d9f1a3"
down_revision: Union[str, Sequence[str], None] = "a0c1e2d3f4b5"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    insp = inspect(op.get_bind())
    columns = {c["name"] for c in insp.get_columns("notifications")}
    indexes = {ix.get("name") for ix in insp.get_indexes("notifications")}

    if "kind" not in columns:
        op.add_column("notifications", sa.Column("kind", sa.String(length=32), nullable=True))

    # Rows written before the column existed are classified by their fixed message prefixes.
    for kind, prefix in (
        ("event.new", "New event %"),
        ("registration.confirmed", "You have successfully registered for %"),
        ("society.decision", "Your society request for %"),
    ):
        op.execute(
            sa.text("UPDATE notifications SET kind = :kind WHERE kind IS NULL AND message LIKE :prefix").bindparams(
                kind=kind, prefix=prefix
            )
        )

    if "idx_notifications_link" in indexes:
        op.drop_index("idx_notifications_link", table_name="notifications")
    if "idx_notifications_link_kind" not in indexes:
        op.create_index("idx_notifications_link_kind", "notifications", ["link", "kind"])


def downgrade() -> None:
    op.drop_index("idx_notifications_link_kind", table_name="notifications")
    op.create_index("idx_notifications_link", "notifications", ["link"])
    with op.batch_alter_table("notifications") as batch_op:
        batch_op.drop_column("kind")
