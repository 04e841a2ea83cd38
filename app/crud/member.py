# app/crud/member.py
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.core.rbac import Role
from app.models.campaign_member import CampaignMember
from app.models.user import User


def get_membership(db: Session, campaign_id: int, user_id: int) -> Optional[CampaignMember]:
    return (
        db.query(CampaignMember)
        .filter(CampaignMember.campaign_id == campaign_id, CampaignMember.user_id == user_id)
        .first()
    )


def get_member(db: Session, campaign_id: int, member_id: int) -> Optional[CampaignMember]:
    return (
        db.query(CampaignMember)
        .filter(CampaignMember.campaign_id == campaign_id, CampaignMember.id == member_id)
        .first()
    )


def list_members(db: Session, campaign_id: int) -> List[CampaignMember]:
    """Owner first, then contributors, then viewers."""
    by_role = case(
        (CampaignMember.role == Role.OWNER.value, 0),
        (CampaignMember.role == Role.CONTRIBUTOR.value, 1),
        else_=2,
    )
    return (
        db.query(CampaignMember)
        .filter(CampaignMember.campaign_id == campaign_id)
        .order_by(by_role, CampaignMember.joined_at, CampaignMember.id)
        .all()
    )


def is_member_email(db: Session, campaign_id: int, email: str) -> bool:
    row = (
        db.query(CampaignMember.id)
        .join(User, User.id == CampaignMember.user_id)
        .filter(CampaignMember.campaign_id == campaign_id, User.email == email)
        .first()
    )
    return row is not None


def update_member_role(db: Session, member: CampaignMember, role: Role) -> CampaignMember:
    member.role = role.value
    db.commit()
    db.refresh(member)
    return member


def delete_member(db: Session, member: CampaignMember) -> None:
    db.delete(member)
    db.commit()
