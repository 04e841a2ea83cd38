# app/models/campaign_invite.py
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.base import Base

INVITE_STATUSES = ("pending", "accepted", "declined")


class CampaignInvite(Base):
    __tablename__ = "campaign_invites"
    __table_args__ = (
        # at most one *pending* invite per (campaign, email)
        Index(
            "uq_campaign_invites_pending_email",
            "campaign_id",
            "invitee_email",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    invite_token = Column(String(64), unique=True, nullable=False, index=True)

    campaign_id = Column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inviter_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invitee_email = Column(String(255), nullable=False, index=True)

    role = Column(String(20), nullable=False)  # contributor / viewer
    # pending / accepted / declined; expiry is derived from expires_at
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    campaign = relationship("Campaign", back_populates="invites")
    inviter = relationship("User", foreign_keys=[inviter_id])
