from pydantic import BaseModel, field_validator
from typing import Optional, Literal
from datetime import datetime

ReportStatus = Literal["pending", "resolved", "dismissed"]


class ReportCreate(BaseModel):
    reason: str
    reported_animal_id: Optional[str] = None
    reported_user_id: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A reason is required")
        return v


class ReportStatusUpdate(BaseModel):
    status: ReportStatus


class ReportResponse(BaseModel):
    id: str
    reporter_id: Optional[str] = None
    reported_animal_id: Optional[str] = None
    reported_user_id: Optional[str] = None
    reason: str
    status: ReportStatus = "pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
