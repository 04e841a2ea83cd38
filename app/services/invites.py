# app/services/invites.py
"""
Campaign invite lifecycle.

    pending --accept-->  accepted   (terminal, membership created)
    pending --decline--> declined   (terminal)
    pending --expires_at passes--> unusable (status stays "pending"; see is_expired)

Who may *create* an invite is checked by the caller (API guard, SEND_INVITES).
Everything else (identity binding, expiry, status) is checked here.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings, INVITE_TTL_DAYS
from app.core.errors import (
    AlreadyMember,
    AlreadyResolved,
    Expired,
    NotFound,
    TransientIO,
)
from app.core.rbac import Role, role_from_invite_label
from app.core.security import normalize_email
from app.crud import invite as invite_store
from app.crud.member import is_member_email
from app.crud.user import lookup_email_by_user_id
from app.models.campaign import Campaign
from app.models.campaign_invite import CampaignInvite
from app.models.campaign_member import CampaignMember
from app.models.user import User
from app.services.notifications import InviteDispatcher, InviteEmail

log = logging.getLogger("app.invites")

INVITE_TTL = timedelta(days=INVITE_TTL_DAYS)


@dataclass
class InviteCreated:
    invite: CampaignInvite
    invite_link: str
    email_sent: bool
    email_error: Optional[str] = None


@dataclass
class InvitePreview:
    campaign_id: int
    campaign_name: str
    game_system: str
    role: str
    inviter_name: Optional[str]
    expires_at: datetime


# -----------------------------
# Policy helpers
# -----------------------------
def generate_token() -> str:
    return secrets.token_urlsafe(32)


def is_expired(invite: CampaignInvite, now: Optional[datetime] = None) -> bool:
    """The one expiry predicate: usable strictly before expires_at."""
    now = now or utcnow()
    return invite.expires_at is None or now >= invite.expires_at


def build_invite_link(token: str, origin: Optional[str] = None) -> str:
    base = (origin or settings.APP_ORIGIN).rstrip("/")
    return f"{base}?{urlencode({'invite': token})}"


def _validate(invite: Optional[CampaignInvite], requester_email: Optional[str], now: datetime) -> CampaignInvite:
    """
    NotFound for a missing invite *and* for an invite addressed to somebody
    else, so a leaked token tells the wrong account nothing.
    """
    if invite is None:
        raise NotFound("Invite not found or not addressed to you.")
    if normalize_email(invite.invitee_email) != normalize_email(requester_email):
        raise NotFound("Invite not found or not addressed to you.")
    if is_expired(invite, now):
        raise Expired()
    if invite.status != "pending":
        raise AlreadyResolved(f"This invite has already been {invite.status}.")
    return invite


# -----------------------------
# Operations
# -----------------------------
def create_invite(
    db: Session,
    *,
    campaign: Campaign,
    inviter: User,
    invitee_email: str,
    role: str,
    dispatcher: Optional[InviteDispatcher] = None,
    now: Optional[datetime] = None,
) -> InviteCreated:
    """
    Store a pending invite and try to email it. The stored invite and its link
    are the result; a failed email only downgrades email_sent.
    """
    now = now or utcnow()
    email = normalize_email(invitee_email)
    offered: Role = role_from_invite_label(role)

    if is_member_email(db, campaign.id, email):
        raise AlreadyMember("That person is already a member of this campaign.")

    stale = invite_store.delete_expired_pending(db, campaign.id, email, now)
    if stale:
        log.info("replacing %s expired invite(s) campaign_id=%s", stale, campaign.id)

    invite = invite_store.insert_invite(
        db,
        token=generate_token(),
        campaign_id=campaign.id,
        inviter_id=inviter.id,
        invitee_email=email,
        role=offered.value,
        created_at=now,
        expires_at=now + INVITE_TTL,
    )
    link = build_invite_link(invite.invite_token)
    log.info("invite created id=%s campaign_id=%s role=%s", invite.id, campaign.id, invite.role)

    if dispatcher is None:
        return InviteCreated(invite=invite, invite_link=link, email_sent=False, email_error="No email channel.")

    try:
        dispatcher.send(
            InviteEmail(
                to=email,
                inviter_name=inviter.label,
                campaign_name=campaign.name,
                role=invite.role,
                invite_link=link,
            )
        )
    except TransientIO as e:
        log.warning("invite %s created but email unsent: %s", invite.id, e.message)
        return InviteCreated(invite=invite, invite_link=link, email_sent=False, email_error=e.message)
    except Exception:
        # the invite is already committed; the link must still reach the caller
        log.exception("invite %s created but dispatcher crashed", invite.id)
        return InviteCreated(
            invite=invite, invite_link=link, email_sent=False, email_error="Email could not be sent."
        )

    return InviteCreated(invite=invite, invite_link=link, email_sent=True)


def resolve_invite(
    db: Session, token: str, requester_email: str, now: Optional[datetime] = None
) -> InvitePreview:
    """What the invitee sees before choosing: campaign name/system and offered role."""
    invite = _validate(invite_store.lookup_invite_by_token(db, token), requester_email, now or utcnow())
    campaign = invite.campaign
    return InvitePreview(
        campaign_id=campaign.id,
        campaign_name=campaign.name,
        game_system=campaign.game_system,
        role=invite.role,
        inviter_name=invite.inviter.label if invite.inviter is not None else None,
        expires_at=invite.expires_at,
    )


def _requester_email(db: Session, requester_id: int) -> str:
    email = lookup_email_by_user_id(db, requester_id)
    if email is None:
        raise NotFound("Invite not found or not addressed to you.")
    return email


def accept_invite(
    db: Session, token: str, requester_id: int, now: Optional[datetime] = None
) -> CampaignMember:
    now = now or utcnow()
    invite = _validate(
        invite_store.lookup_invite_by_token(db, token), _requester_email(db, requester_id), now
    )
    member = invite_store.accept_invite(db, invite, requester_id, now)
    log.info("invite accepted id=%s campaign_id=%s user_id=%s", invite.id, invite.campaign_id, requester_id)
    return member


def decline_invite(
    db: Session, token: str, requester_id: int, now: Optional[datetime] = None
) -> CampaignInvite:
    now = now or utcnow()
    invite = _validate(
        invite_store.lookup_invite_by_token(db, token), _requester_email(db, requester_id), now
    )
    invite = invite_store.decline_invite(db, invite, now)
    log.info("invite declined id=%s campaign_id=%s", invite.id, invite.campaign_id)
    return invite
