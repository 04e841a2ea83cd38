# app/crud/invite.py
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AlreadyMember, AlreadyResolved, DuplicateInvite
from app.models.campaign_invite import CampaignInvite
from app.models.campaign_member import CampaignMember


def lookup_invite_by_token(db: Session, token: str) -> Optional[CampaignInvite]:
    """
    Invite plus its campaign, by token. Does not check membership: the
    invitee is not a member yet and only needs the campaign's display fields.
    """
    if not token:
        return None
    return (
        db.query(CampaignInvite)
        .options(joinedload(CampaignInvite.campaign), joinedload(CampaignInvite.inviter))
        .filter(CampaignInvite.invite_token == token)
        .first()
    )


def delete_expired_pending(db: Session, campaign_id: int, email: str, now: datetime) -> int:
    """
    Drop pending invites for (campaign, email) whose window has passed so a
    fresh invite can take their slot. Not committed here.
    """
    return (
        db.query(CampaignInvite)
        .filter(
            CampaignInvite.campaign_id == campaign_id,
            CampaignInvite.invitee_email == email,
            CampaignInvite.status == "pending",
            CampaignInvite.expires_at <= now,
        )
        .delete(synchronize_session=False)
    )


def insert_invite(
    db: Session,
    *,
    token: str,
    campaign_id: int,
    inviter_id: int,
    invitee_email: str,
    role: str,
    created_at: datetime,
    expires_at: datetime,
) -> CampaignInvite:
    invite = CampaignInvite(
        invite_token=token,
        campaign_id=campaign_id,
        inviter_id=inviter_id,
        invitee_email=invitee_email,
        role=role,
        status="pending",
        created_at=created_at,
        expires_at=expires_at,
    )
    db.add(invite)
    try:
        db.commit()
    except IntegrityError:
        # partial unique index on pending (campaign_id, invitee_email)
        db.rollback()
        raise DuplicateInvite()
    db.refresh(invite)
    return invite


def accept_invite(db: Session, invite: CampaignInvite, user_id: int, now: datetime) -> CampaignMember:
    """
    One transaction: pending -> accepted (conditional) and the membership
    insert. Either both land or neither does.
    """
    try:
        updated = (
            db.query(CampaignInvite)
            .filter(CampaignInvite.id == invite.id, CampaignInvite.status == "pending")
            .update(
                {CampaignInvite.status: "accepted", CampaignInvite.responded_at: now},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise AlreadyResolved()

        existing = (
            db.query(CampaignMember.id)
            .filter(
                CampaignMember.campaign_id == invite.campaign_id,
                CampaignMember.user_id == user_id,
            )
            .first()
        )
        if existing:
            raise AlreadyMember()

        member = CampaignMember(
            campaign_id=invite.campaign_id,
            user_id=user_id,
            role=invite.role,
            invited_by=invite.inviter_id,
            joined_at=now,
        )
        db.add(member)
        db.commit()
    except IntegrityError:
        # lost the race on uq_campaign_members_campaign_user
        db.rollback()
        raise AlreadyMember()
    except Exception:
        db.rollback()
        raise

    db.refresh(member)
    db.refresh(invite)
    return member


def decline_invite(db: Session, invite: CampaignInvite, now: datetime) -> CampaignInvite:
    try:
        updated = (
            db.query(CampaignInvite)
            .filter(CampaignInvite.id == invite.id, CampaignInvite.status == "pending")
            .update(
                {CampaignInvite.status: "declined", CampaignInvite.responded_at: now},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise AlreadyResolved()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invite)
    return invite
