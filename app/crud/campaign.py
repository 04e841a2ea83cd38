# app/crud/campaign.py
from typing import Any, Dict, List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.errors import InvalidRequest
from app.core.rbac import Role
from app.models.campaign import Campaign, PartyFund, GAME_SYSTEMS
from app.models.campaign_member import CampaignMember


# --- helpers -----------------------------------------------------------------

def normalize_game_system(val: Optional[str]) -> str:
    """Unknown or empty systems are stored as 'other'."""
    v = (val or "").strip().lower()
    return v if v in GAME_SYSTEMS else "other"


# --- CRUD --------------------------------------------------------------------

def get_campaign(db: Session, campaign_id: int) -> Optional[Campaign]:
    return db.get(Campaign, campaign_id)


def create_campaign_with_treasury(
    db: Session, name: str, owner_id: int, system: Optional[str] = "dnd-5e"
) -> Campaign:
    """
    Campaign + owner membership + party fund in one commit, so a campaign
    never exists without exactly one owner.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidRequest("Campaign name cannot be empty.")

    now = utcnow()
    campaign = Campaign(
        name=name,
        owner_id=owner_id,
        game_system=normalize_game_system(system),
        party_fund_gets_share=True,
        created_at=now,
        updated_at=now,
    )
    db.add(campaign)
    db.flush()

    db.add(
        CampaignMember(
            campaign_id=campaign.id,
            user_id=owner_id,
            role=Role.OWNER.value,
            joined_at=now,
        )
    )
    db.add(PartyFund(campaign_id=campaign.id, name="Party Fund", balance=0))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(campaign)
    return campaign


def list_campaigns_for_user(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """
    Every campaign the user belongs to, with their role.
    Owned campaigns first, then by name.
    """
    owned_first = case((CampaignMember.role == Role.OWNER.value, 0), else_=1)
    rows = (
        db.query(Campaign, CampaignMember)
        .join(CampaignMember, CampaignMember.campaign_id == Campaign.id)
        .filter(CampaignMember.user_id == user_id)
        .order_by(owned_first, Campaign.name, Campaign.id)
        .all()
    )
    return [
        {"role": m.role, "joined_at": m.joined_at, "campaign": c}
        for (c, m) in rows
    ]


def rename_campaign(db: Session, campaign: Campaign, name: str) -> Campaign:
    campaign.name = name.strip()
    campaign.updated_at = utcnow()
    db.commit()
    db.refresh(campaign)
    return campaign


def delete_campaign(db: Session, campaign: Campaign) -> None:
    # members / invites / party fund go with it (FK ON DELETE CASCADE)
    db.delete(campaign)
    db.commit()
