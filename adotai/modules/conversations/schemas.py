from pydantic import BaseModel, field_validator
from typing import Optional, Literal
from datetime import datetime


class ConversationCreate(BaseModel):
    animal_id: str
    advertiser_id: str


class ConversationResponse(BaseModel):
    id: str
    animal_id: str
    animal_name: str
    adopter_id: str
    adopter_name: str
    advertiser_id: str
    advertiser_name: str
    status: Literal["active", "completed", "closed"] = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content cannot be empty")
        return value.strip()


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    content: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
