# app/services/membership.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from sqlalchemy.orm import Session

from app.core.errors import InvalidRequest, NotFound, Unauthorized
from app.core.rbac import ASSIGNABLE_ROLES, Capability, Role
from app.core.scoping import CampaignContext
from app.crud import campaign as campaign_store
from app.crud import member as member_store
from app.crud.user import lookup_email_by_user_id
from app.models.campaign import Campaign
from app.models.campaign_member import CampaignMember

log = logging.getLogger("app.membership")


def _target(db: Session, ctx: CampaignContext, member_id: int) -> CampaignMember:
    member = member_store.get_member(db, ctx.campaign.id, member_id)
    if member is None:
        raise NotFound("Member not found.")
    return member


def list_members(db: Session, ctx: CampaignContext) -> List[Dict[str, Any]]:
    ctx.require(Capability.VIEW)
    out = []
    for m in member_store.list_members(db, ctx.campaign.id):
        out.append(
            {
                "id": m.id,
                "campaign_id": m.campaign_id,
                "user_id": m.user_id,
                "role": m.role,
                "email": lookup_email_by_user_id(db, m.user_id) or "Unknown user",
                "invited_by": m.invited_by,
                "joined_at": m.joined_at,
            }
        )
    return out


def change_member_role(
    db: Session, ctx: CampaignContext, member_id: int, new_role: Union[Role, str]
) -> CampaignMember:
    """
    Owner-only. Moves another non-owner member between contributor and
    viewer; the owner role can never be handed out here.
    """
    ctx.require(Capability.CHANGE_ROLES)
    role = Role.parse(new_role)
    if role not in ASSIGNABLE_ROLES:
        raise InvalidRequest("Members can only be made contributor or viewer.")

    member = _target(db, ctx, member_id)
    if member.user_id == ctx.user.id:
        raise Unauthorized("You cannot change your own role.")
    if member.role == Role.OWNER.value:
        raise Unauthorized("The owner's role cannot be changed.")

    if member.role == role.value:
        return member
    old = member.role
    member = member_store.update_member_role(db, member, role)
    log.info(
        "member role changed campaign_id=%s member_id=%s %s -> %s",
        ctx.campaign.id, member.id, old, role.value,
    )
    return member


def toggle_member_role(db: Session, ctx: CampaignContext, member_id: int) -> CampaignMember:
    """viewer <-> contributor"""
    ctx.require(Capability.CHANGE_ROLES)
    member = _target(db, ctx, member_id)
    new_role = Role.CONTRIBUTOR if member.role == Role.VIEWER.value else Role.VIEWER
    return change_member_role(db, ctx, member_id, new_role)


def remove_member(db: Session, ctx: CampaignContext, member_id: int) -> int:
    """Returns the removed user's id."""
    ctx.require(Capability.REMOVE_MEMBERS)
    member = _target(db, ctx, member_id)
    if member.user_id == ctx.user.id:
        raise Unauthorized("You cannot remove yourself. Leave the campaign instead.")
    if member.role == Role.OWNER.value:
        raise Unauthorized("The campaign owner cannot be removed.")
    campaign_id, user_id = member.campaign_id, member.user_id
    member_store.delete_member(db, member)
    log.info("member removed campaign_id=%s user_id=%s", campaign_id, user_id)
    return user_id


def leave_campaign(db: Session, ctx: CampaignContext) -> None:
    if ctx.role is Role.OWNER:
        raise Unauthorized("Owners cannot leave their campaign; delete it instead.")
    ctx.require(Capability.LEAVE_CAMPAIGN)
    campaign_id, user_id = ctx.campaign.id, ctx.user.id
    member_store.delete_member(db, ctx.membership)
    log.info("member left campaign_id=%s user_id=%s", campaign_id, user_id)


def rename_campaign(db: Session, ctx: CampaignContext, name: str) -> Campaign:
    ctx.require(Capability.RENAME_CAMPAIGN)
    name = (name or "").strip()
    if not name:
        raise InvalidRequest("Campaign name cannot be empty.")
    return campaign_store.rename_campaign(db, ctx.campaign, name)


def delete_campaign(db: Session, ctx: CampaignContext, confirm_name: str) -> None:
    ctx.require(Capability.DELETE_CAMPAIGN)
    if confirm_name != ctx.campaign.name:
        raise InvalidRequest(
            "Campaign name does not match. Type the exact campaign name to confirm deletion."
        )
    campaign_id = ctx.campaign.id
    campaign_store.delete_campaign(db, ctx.campaign)
    log.info("campaign deleted campaign_id=%s by user_id=%s", campaign_id, ctx.user.id)
