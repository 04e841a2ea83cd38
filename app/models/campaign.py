# app/models/campaign.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.db.base import Base

GAME_SYSTEMS = ("dnd-5e", "pathfinder-1e", "pathfinder-2e", "other")


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    game_system = Column(String(32), nullable=False, default="dnd-5e")

    # whether the party fund takes a share in equal-split distribution
    party_fund_gets_share = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User")
    members = relationship(
        "CampaignMember",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    invites = relationship(
        "CampaignInvite",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    party_fund = relationship(
        "PartyFund",
        back_populates="campaign",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PartyFund(Base):
    """Shared treasury row; exactly one per campaign, created with it."""

    __tablename__ = "party_funds"

    id = Column(Integer, primary_key=True)
    campaign_id = Column(
        Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    name = Column(String(255), nullable=False, default="Party Fund")
    balance = Column(Numeric(12, 2), nullable=False, default=0)

    campaign = relationship("Campaign", back_populates="party_fund")
