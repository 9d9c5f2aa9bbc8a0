from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


class ActivityEntry(BaseModel):
    id: Any
    created_at: Optional[datetime] = None
    action: Optional[str] = None
    description: Optional[str] = None
    user_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True
        extra = "allow"


class AdminStats(BaseModel):
    total_users: int
    active_users: int
    blocked_users: int
    total_ads: int
    available_ads: int
    reported_ads: int
    total_reports: int
