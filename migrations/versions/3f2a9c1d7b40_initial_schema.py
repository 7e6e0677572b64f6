"""initial schema

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2025-11-20 10:12:44.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f2a9c1d7b40"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("WHOLESALER", "RETAILER", "ADMIN", name="userrole")
wholesaler_status = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", "SUSPENDED", name="wholesalerstatus"
)
order_status = sa.Enum(
    "PENDING",
    "CONFIRMED",
    "PREPARING",
    "SHIPPING",
    "DELIVERED",
    "CANCELLED",
    name="orderstatus",
)
settlement_status = sa.Enum("PENDING", "COMPLETED", name="settlementstatus")
inquiry_type = sa.Enum(
    "WHOLESALER_TO_ADMIN",
    "RETAILER_TO_WHOLESALER",
    "RETAILER_TO_ADMIN",
    name="inquirytype",
)
inquiry_status = sa.Enum("OPEN", "ANSWERED", "CLOSED", name="inquirystatus")
message_sender_type = sa.Enum(
    "USER", "ADMIN", "WHOLESALER", name="messagesendertype"
)
cs_thread_status = sa.Enum(
    "OPEN", "BOT_HANDLED", "ESCALATED", "ANSWERED", "CLOSED",
    name="csthreadstatus",
)
cs_sender_type = sa.Enum("USER", "BOT", "ADMIN", name="cssendertype")


def _timestamps(updated=True):
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False))
    return columns


def upgrade():
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_user_id", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("role", user_role, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_profiles_external_user_id", "profiles", ["external_user_id"],
        unique=True,
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "wholesalers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("business_name", sa.String(length=100), nullable=False),
        sa.Column("status", wholesaler_status, nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_wholesalers_profile_id", "wholesalers", ["profile_id"])
    op.create_index("ix_wholesalers_status", "wholesalers", ["status"])

    op.create_table(
        "retailers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("business_name", sa.String(length=100), nullable=False),
        sa.Column("anonymous_code", sa.String(length=20), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("anonymous_code"),
    )
    op.create_index("ix_retailers_profile_id", "retailers", ["profile_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_number", sa.String(length=40), nullable=False),
        sa.Column(
            "wholesaler_id",
            sa.Integer(),
            sa.ForeignKey("wholesalers.id"),
            nullable=False,
        ),
        sa.Column(
            "retailer_id",
            sa.Integer(),
            sa.ForeignKey("retailers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", order_status, nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("wholesaler_read_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("order_number"),
        sa.CheckConstraint(
            "total_amount >= 0", name="check_order_total_non_negative"
        ),
    )
    op.create_index("ix_orders_wholesaler_id", "orders", ["wholesaler_id"])
    op.create_index("ix_orders_retailer_id", "orders", ["retailer_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id"),
            nullable=False,
        ),
        sa.Column(
            "wholesaler_id",
            sa.Integer(),
            sa.ForeignKey("wholesalers.id"),
            nullable=False,
        ),
        sa.Column("order_amount", sa.Integer(), nullable=False),
        sa.Column(
            "platform_fee_rate",
            sa.Numeric(precision=5, scale=4),
            nullable=False,
        ),
        sa.Column("platform_fee", sa.Integer(), nullable=False),
        sa.Column("wholesaler_amount", sa.Integer(), nullable=False),
        sa.Column("status", settlement_status, nullable=False),
        sa.Column("scheduled_payout_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("order_id"),
        sa.CheckConstraint(
            "platform_fee_rate >= 0 AND platform_fee_rate <= 1",
            name="check_platform_fee_rate_range",
        ),
    )
    op.create_index(
        "ix_settlements_wholesaler_id", "settlements", ["wholesaler_id"])

    op.create_table(
        "inquiries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("inquiry_type", inquiry_type, nullable=False),
        sa.Column(
            "wholesaler_id",
            sa.Integer(),
            sa.ForeignKey("wholesalers.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachment_urls_json", sa.Text(), nullable=True),
        sa.Column("status", inquiry_status, nullable=False),
        sa.Column("admin_reply", sa.Text(), nullable=True),
        sa.Column("replied_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inquiries_user_id", "inquiries", ["user_id"])
    op.create_index(
        "ix_inquiries_wholesaler_id", "inquiries", ["wholesaler_id"])
    op.create_index("ix_inquiries_created_at", "inquiries", ["created_at"])

    op.create_table(
        "inquiry_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "inquiry_id",
            sa.Integer(),
            sa.ForeignKey("inquiries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_type", message_sender_type, nullable=False),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("edited_at", sa.DateTime(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_inquiry_messages_inquiry_id", "inquiry_messages", ["inquiry_id"])
    op.create_index(
        "ix_inquiry_messages_created_at", "inquiry_messages", ["created_at"])

    op.create_table(
        "cs_threads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("status", cs_thread_status, nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cs_threads_user_id", "cs_threads", ["user_id"])

    op.create_table(
        "cs_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "cs_thread_id",
            sa.Integer(),
            sa.ForeignKey("cs_threads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_type", cs_sender_type, nullable=False),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_cs_messages_cs_thread_id", "cs_messages", ["cs_thread_id"])
    op.create_index(
        "ix_cs_messages_created_at", "cs_messages", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "account_deletions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("profile_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=200), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_account_deletions_profile_id", "account_deletions",
        ["profile_id"],
    )

    op.create_table(
        "faqs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_announcements_created_at", "announcements", ["created_at"])

    op.create_table(
        "voc_feedbacks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "profile_id",
            sa.Integer(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_voc_feedbacks_profile_id", "voc_feedbacks", ["profile_id"])
    op.create_index(
        "ix_voc_feedbacks_created_at", "voc_feedbacks", ["created_at"])


def downgrade():
    for table in (
        "voc_feedbacks",
        "announcements",
        "faqs",
        "account_deletions",
        "audit_logs",
        "cs_messages",
        "cs_threads",
        "inquiry_messages",
        "inquiries",
        "settlements",
        "orders",
        "retailers",
        "wholesalers",
        "profiles",
    ):
        op.drop_table(table)
