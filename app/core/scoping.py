# app/core/scoping.py
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Path
from sqlalchemy.orm import Session

from app.core.auth import get_db, get_current_user
from app.core.errors import NotFound
from app.core.rbac import Capability, Role, can, require
from app.crud.campaign import get_campaign
from app.crud.member import get_membership
from app.models.campaign import Campaign
from app.models.campaign_member import CampaignMember
from app.models.user import User


@dataclass
class CampaignContext:
    """
    Who is acting on which campaign, and in what role. Built once per request
    and handed to every operation instead of being looked up ad hoc.
    """

    user: User
    campaign: Campaign
    membership: CampaignMember

    @property
    def role(self) -> Role:
        return Role(self.membership.role)

    def can(self, capability: Capability) -> bool:
        return can(self.role, capability)

    def require(self, capability: Capability) -> None:
        require(self.role, capability)


def load_campaign_context(db: Session, user: User, campaign_id: int) -> CampaignContext:
    """
    Non-members get NotFound: a campaign's existence is not disclosed to
    people outside it.
    """
    campaign = get_campaign(db, campaign_id)
    membership = get_membership(db, campaign_id, user.id) if campaign else None
    if campaign is None or membership is None:
        raise NotFound("Campaign not found.")
    return CampaignContext(user=user, campaign=campaign, membership=membership)


def get_campaign_context(
    campaign_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CampaignContext:
    """FastAPI dependency for /campaigns/{campaign_id}/... routes."""
    return load_campaign_context(db, current_user, campaign_id)


def require_capability(capability: Capability):
    """Dependency factory: context plus a hard permission check."""

    def _dep(ctx: CampaignContext = Depends(get_campaign_context)) -> CampaignContext:
        ctx.require(capability)
        return ctx

    return _dep
