# app/schemas/member.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class MemberOut(BaseModel):
    id: int
    campaign_id: int
    user_id: int
    role: Literal["owner", "contributor", "viewer"]
    email: str
    invited_by: Optional[int] = None
    joined_at: datetime


class MemberRoleUpdate(BaseModel):
    role: Literal["contributor", "viewer"]
