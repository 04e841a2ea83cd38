# app/schemas/invite.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class InviteCreate(BaseModel):
    email: EmailStr
    # invite-time vocabulary ("player" / "dm") or membership vocabulary
    role: str = Field(default="player")


class InviteOut(BaseModel):
    id: int
    campaign_id: int
    invitee_email: EmailStr
    role: Literal["contributor", "viewer"]
    status: Literal["pending", "accepted", "declined"]
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InviteCreatedOut(BaseModel):
    invite: InviteOut
    invite_link: str
    email_sent: bool
    email_error: Optional[str] = None


class InvitePreviewOut(BaseModel):
    campaign_id: int
    campaign_name: str
    game_system: str
    role: Literal["contributor", "viewer"]
    inviter_name: Optional[str] = None
    expires_at: datetime


class InviteResolutionOut(BaseModel):
    status: Literal["accepted", "declined"]
    campaign_id: int
    role: Optional[Literal["contributor", "viewer"]] = None
    # client should drop ?invite= from its URL so it is not re-triggered
    clear_invite_param: bool = True
