# app/schemas/campaign.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GameSystem = Literal["dnd-5e", "pathfinder-1e", "pathfinder-2e", "other"]
RoleName = Literal["owner", "contributor", "viewer"]


class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    game_system: str = Field(default="dnd-5e")


class CampaignRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CampaignDelete(BaseModel):
    # must match the campaign name exactly
    confirm_name: str


class CampaignOut(BaseModel):
    id: int
    name: str
    owner_id: int
    game_system: GameSystem
    party_fund_gets_share: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CampaignMembershipOut(BaseModel):
    """One row of the campaign list: the campaign plus the caller's role in it."""

    role: RoleName
    joined_at: datetime
    campaign: CampaignOut
