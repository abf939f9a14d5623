# backend/app/schemas/activity.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from backend.app.models.activity import ActivityAction
from backend.app.schemas.user import UserBrief


class ActivityResponse(BaseModel):
    id: int
    vault_id: int
    user_id: int
    action: ActivityAction
    details: Optional[str]
    created_at: Optional[datetime] = None
    user: UserBrief

    class Config:
        from_attributes = True


class ActivityFeed(BaseModel):
    activities: List[ActivityResponse]
