# app/api/v1/members.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, Request, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_db
from app.core.scoping import CampaignContext, get_campaign_context
from app.schemas.member import MemberOut, MemberRoleUpdate
from app.services import membership
from app.services.audit import audit_log, ip_from_request

router = APIRouter()


def _out(member) -> MemberOut:
    return MemberOut(
        id=member.id,
        campaign_id=member.campaign_id,
        user_id=member.user_id,
        role=member.role,
        email=member.user.email if member.user is not None else "Unknown user",
        invited_by=member.invited_by,
        joined_at=member.joined_at,
    )


def _audit_role_change(db: Session, request: Request, ctx: CampaignContext, member) -> None:
    audit_log(
        db,
        campaign_id=ctx.campaign.id,
        user_id=ctx.user.id,
        action="MEMBER_ROLE_CHANGED",
        entity_type="campaign_member",
        entity_id=member.id,
        meta={"target_user_id": member.user_id, "role": member.role},
        ip=ip_from_request(request),
    )


@router.get("/campaigns/{campaign_id}/members", response_model=List[MemberOut])
def list_members(
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    return [MemberOut(**row) for row in membership.list_members(db, ctx)]


@router.patch("/campaigns/{campaign_id}/members/{member_id}", response_model=MemberOut)
def change_member_role(
    payload: MemberRoleUpdate,
    request: Request,
    member_id: int = Path(..., ge=1),
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    member = membership.change_member_role(db, ctx, member_id, payload.role)
    _audit_role_change(db, request, ctx, member)
    return _out(member)


@router.post("/campaigns/{campaign_id}/members/{member_id}/toggle-role", response_model=MemberOut)
def toggle_member_role(
    request: Request,
    member_id: int = Path(..., ge=1),
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    member = membership.toggle_member_role(db, ctx, member_id)
    _audit_role_change(db, request, ctx, member)
    return _out(member)


@router.delete("/campaigns/{campaign_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    request: Request,
    member_id: int = Path(..., ge=1),
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    removed_user_id = membership.remove_member(db, ctx, member_id)
    audit_log(
        db,
        campaign_id=ctx.campaign.id,
        user_id=ctx.user.id,
        action="MEMBER_REMOVED",
        entity_type="campaign_member",
        entity_id=member_id,
        meta={"target_user_id": removed_user_id},
        ip=ip_from_request(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
