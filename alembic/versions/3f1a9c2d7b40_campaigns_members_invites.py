"""users, campaigns, party funds, memberships, invites, audit log

Revision ID: 3f1a9c2d7b40
Revises:
Create Date: 2026-10-16 10:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f1a9c2d7b40"
down_revision = None
branch_labels = None
depends_on = None


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return name in _insp().get_table_names()


def upgrade():
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("hashed_password", sa.String, nullable=False),
            sa.Column("display_name", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime, nullable=False),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if not _has_table("campaigns"):
        op.create_table(
            "campaigns",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("owner_id", sa.Integer, nullable=False),
            sa.Column("game_system", sa.String(length=32), nullable=False),
            sa.Column("party_fund_gets_share", sa.Boolean, nullable=False),
            sa.Column("created_at", sa.DateTime, nullable=False),
            sa.Column("updated_at", sa.DateTime, nullable=False),
            sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_campaigns_id", "campaigns", ["id"])
        op.create_index("ix_campaigns_owner_id", "campaigns", ["owner_id"])

    if not _has_table("party_funds"):
        op.create_table(
            "party_funds",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("campaign_id", sa.Integer, nullable=False, unique=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("balance", sa.Numeric(12, 2), nullable=False),
            sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        )

    if not _has_table("campaign_members"):
        op.create_table(
            "campaign_members",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("campaign_id", sa.Integer, nullable=False),
            sa.Column("user_id", sa.Integer, nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False),
            sa.Column("invited_by", sa.Integer, nullable=True),
            sa.Column("joined_at", sa.DateTime, nullable=False),
            sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="SET NULL"),
            sa.UniqueConstraint("campaign_id", "user_id", name="uq_campaign_members_campaign_user"),
            sa.CheckConstraint(
                "role IN ('owner','contributor','viewer')", name="ck_campaign_members_role"
            ),
        )
        op.create_index("ix_campaign_members_id", "campaign_members", ["id"])
        op.create_index("ix_campaign_members_campaign_id", "campaign_members", ["campaign_id"])
        op.create_index("ix_campaign_members_user_id", "campaign_members", ["user_id"])

    if not _has_table("campaign_invites"):
        op.create_table(
            "campaign_invites",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("invite_token", sa.String(length=64), nullable=False),
            sa.Column("campaign_id", sa.Integer, nullable=False),
            sa.Column("inviter_id", sa.Integer, nullable=True),
            sa.Column("invitee_email", sa.String(length=255), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("created_at", sa.DateTime, nullable=False),
            sa.Column("expires_at", sa.DateTime, nullable=False),
            sa.Column("responded_at", sa.DateTime, nullable=True),
            sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["inviter_id"], ["users.id"], ondelete="SET NULL"),
            sa.CheckConstraint(
                "status IN ('pending','accepted','declined')", name="ck_campaign_invites_status"
            ),
            sa.CheckConstraint(
                "role IN ('contributor','viewer')", name="ck_campaign_invites_role"
            ),
        )
        op.create_index("ix_campaign_invites_id", "campaign_invites", ["id"])
        op.create_index(
            "ix_campaign_invites_invite_token", "campaign_invites", ["invite_token"], unique=True
        )
        op.create_index("ix_campaign_invites_campaign_id", "campaign_invites", ["campaign_id"])
        op.create_index("ix_campaign_invites_invitee_email", "campaign_invites", ["invitee_email"])
        op.create_index(
            "uq_campaign_invites_pending_email",
            "campaign_invites",
            ["campaign_id", "invitee_email"],
            unique=True,
            sqlite_where=sa.text("status = 'pending'"),
            postgresql_where=sa.text("status = 'pending'"),
        )

    if not _has_table("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column("campaign_id", sa.Integer, nullable=True),
            sa.Column("user_id", sa.Integer, nullable=True),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("entity_type", sa.String(length=32), nullable=True),
            sa.Column("entity_id", sa.Integer, nullable=True),
            sa.Column("meta", sa.Text, nullable=True),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime, nullable=False),
        )
        op.create_index("ix_audit_logs_campaign_id", "audit_logs", ["campaign_id"])
        op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
        op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade():
    for table in (
        "audit_logs",
        "campaign_invites",
        "campaign_members",
        "party_funds",
        "campaigns",
        "users",
    ):
        if _has_table(table):
            op.drop_table(table)
