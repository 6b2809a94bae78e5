"""normalize legacy status values

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19
"""
from alembic import op

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Старые записи: active/completed/printed/PENDING
    op.execute("UPDATE orders SET status = 'COMPLETED', pickup_code = NULL WHERE lower(status) IN ('completed', 'printed')")
    op.execute("UPDATE orders SET status = 'PENDING_PAYMENT' WHERE lower(status) = 'pending'")
    op.execute("UPDATE orders SET status = upper(status) WHERE status <> upper(status)")


def downgrade() -> None:
    pass
