"""add suspension fields to wholesalers and retailers

Revision ID: 8d41e6b2c915
Revises: 3f2a9c1d7b40
Create Date: 2025-12-04 16:40:02.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8d41e6b2c915"
down_revision = "3f2a9c1d7b40"
branch_labels = None
depends_on = None

retailer_status = sa.Enum("ACTIVE", "SUSPENDED", name="retailerstatus")


def upgrade():
    bind = op.get_bind()
    retailer_status.create(bind, checkfirst=True)

    # SQLite-safe add column
    with op.batch_alter_table("wholesalers", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("suspension_reason", sa.Text(), nullable=True)
        )

    with op.batch_alter_table("retailers", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("status", retailer_status, nullable=True)
        )
        batch_op.add_column(
            sa.Column("suspension_reason", sa.Text(), nullable=True)
        )

    # Backfill existing retailers as active before enforcing NOT NULL
    op.execute("UPDATE retailers SET status = 'ACTIVE' WHERE status IS NULL")

    with op.batch_alter_table("retailers", schema=None) as batch_op:
        batch_op.alter_column(
            "status", existing_type=retailer_status, nullable=False
        )


def downgrade():
    with op.batch_alter_table("retailers", schema=None) as batch_op:
        batch_op.drop_column("suspension_reason")
        batch_op.drop_column("status")

    with op.batch_alter_table("wholesalers", schema=None) as batch_op:
        batch_op.drop_column("suspension_reason")

    retailer_status.drop(op.get_bind(), checkfirst=True)
