# app/api/v1/invites.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth import get_db, get_current_user
from app.core.rbac import Capability
from app.core.scoping import CampaignContext, require_capability
from app.models.user import User
from app.schemas.invite import (
    InviteCreate,
    InviteCreatedOut,
    InviteOut,
    InvitePreviewOut,
    InviteResolutionOut,
)
from app.services import invites as invite_service
from app.services.audit import audit_log, ip_from_request
from app.services.notifications import InviteDispatcher, get_dispatcher

router = APIRouter()


@router.post("/campaigns/{campaign_id}/invites", response_model=InviteCreatedOut, status_code=201)
def api_create_invite(
    payload: InviteCreate,
    request: Request,
    ctx: CampaignContext = Depends(require_capability(Capability.SEND_INVITES)),
    db: Session = Depends(get_db),
    dispatcher: InviteDispatcher = Depends(get_dispatcher),
):
    """
    Always returns the shareable link. `email_sent=false` means the invite
    exists but the email did not go out; share the link manually.
    """
    created = invite_service.create_invite(
        db,
        campaign=ctx.campaign,
        inviter=ctx.user,
        invitee_email=payload.email,
        role=payload.role,
        dispatcher=dispatcher,
    )
    invite = created.invite
    audit_log(
        db,
        campaign_id=ctx.campaign.id,
        user_id=ctx.user.id,
        action="INVITE_CREATED",
        entity_type="invite",
        entity_id=invite.id,
        meta={
            "email": invite.invitee_email,
            "role": invite.role,
            "email_sent": created.email_sent,
        },
        ip=ip_from_request(request),
    )
    return InviteCreatedOut(
        invite=InviteOut.model_validate(invite),
        invite_link=created.invite_link,
        email_sent=created.email_sent,
        email_error=created.email_error,
    )


@router.get("/invites/{token}", response_model=InvitePreviewOut)
def api_resolve_invite(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    preview = invite_service.resolve_invite(db, token, current_user.email)
    return InvitePreviewOut(**preview.__dict__)


@router.post("/invites/{token}/accept", response_model=InviteResolutionOut)
def api_accept_invite(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    member = invite_service.accept_invite(db, token, current_user.id)
    audit_log(
        db,
        campaign_id=member.campaign_id,
        user_id=current_user.id,
        action="INVITE_ACCEPTED",
        entity_type="campaign_member",
        entity_id=member.id,
        meta={"role": member.role, "token_suffix": token[-6:]},
        ip=ip_from_request(request),
    )
    return InviteResolutionOut(status="accepted", campaign_id=member.campaign_id, role=member.role)


@router.post("/invites/{token}/decline", response_model=InviteResolutionOut)
def api_decline_invite(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    invite = invite_service.decline_invite(db, token, current_user.id)
    audit_log(
        db,
        campaign_id=invite.campaign_id,
        user_id=current_user.id,
        action="INVITE_DECLINED",
        entity_type="invite",
        entity_id=invite.id,
        meta={"token_suffix": token[-6:]},
        ip=ip_from_request(request),
    )
    return InviteResolutionOut(status="declined", campaign_id=invite.campaign_id)
