# app/api/v1/campaigns.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from app.core.auth import get_db, get_current_user
from app.core.scoping import CampaignContext, get_campaign_context
from app.crud.campaign import create_campaign_with_treasury, list_campaigns_for_user
from app.models.user import User
from app.schemas.campaign import (
    CampaignCreate,
    CampaignDelete,
    CampaignMembershipOut,
    CampaignOut,
    CampaignRename,
)
from app.services import membership
from app.services.audit import audit_log, ip_from_request

router = APIRouter()


@router.get("/campaigns", response_model=List[CampaignMembershipOut])
def list_campaigns(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Every campaign the caller belongs to: owned first, then joined."""
    rows = list_campaigns_for_user(db, current_user.id)
    return [
        CampaignMembershipOut(
            role=r["role"],
            joined_at=r["joined_at"],
            campaign=CampaignOut.model_validate(r["campaign"]),
        )
        for r in rows
    ]


@router.post("/campaigns", response_model=CampaignOut, status_code=status.HTTP_201_CREATED)
def create_campaign(
    payload: CampaignCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    campaign = create_campaign_with_treasury(
        db, payload.name, current_user.id, payload.game_system
    )
    audit_log(
        db,
        campaign_id=campaign.id,
        user_id=current_user.id,
        action="CAMPAIGN_CREATED",
        entity_type="campaign",
        entity_id=campaign.id,
        meta={"name": campaign.name, "game_system": campaign.game_system},
        ip=ip_from_request(request),
    )
    return campaign


@router.get("/campaigns/{campaign_id}", response_model=CampaignMembershipOut)
def get_campaign(ctx: CampaignContext = Depends(get_campaign_context)):
    return CampaignMembershipOut(
        role=ctx.membership.role,
        joined_at=ctx.membership.joined_at,
        campaign=CampaignOut.model_validate(ctx.campaign),
    )


@router.patch("/campaigns/{campaign_id}", response_model=CampaignOut)
def rename_campaign(
    payload: CampaignRename,
    request: Request,
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    old_name = ctx.campaign.name
    campaign = membership.rename_campaign(db, ctx, payload.name)
    audit_log(
        db,
        campaign_id=campaign.id,
        user_id=ctx.user.id,
        action="CAMPAIGN_RENAMED",
        entity_type="campaign",
        entity_id=campaign.id,
        meta={"old_name": old_name, "new_name": campaign.name},
        ip=ip_from_request(request),
    )
    return campaign


@router.delete("/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(
    payload: CampaignDelete,
    request: Request,
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    campaign_id, name = ctx.campaign.id, ctx.campaign.name
    membership.delete_campaign(db, ctx, payload.confirm_name)
    audit_log(
        db,
        campaign_id=campaign_id,
        user_id=ctx.user.id,
        action="CAMPAIGN_DELETED",
        entity_type="campaign",
        entity_id=campaign_id,
        meta={"name": name},
        ip=ip_from_request(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/campaigns/{campaign_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_campaign(
    request: Request,
    ctx: CampaignContext = Depends(get_campaign_context),
    db: Session = Depends(get_db),
):
    campaign_id = ctx.campaign.id
    membership.leave_campaign(db, ctx)
    audit_log(
        db,
        campaign_id=campaign_id,
        user_id=ctx.user.id,
        action="MEMBER_LEFT",
        entity_type="campaign_member",
        entity_id=None,
        ip=ip_from_request(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
