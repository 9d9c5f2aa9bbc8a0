from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CreateConversationData(BaseModel):
    animal_id: str
    adopter_id: str
    advertiser_id: str


class StartConversationRequest(BaseModel):
    animal_id: str
    advertiser_id: str


class SimpleConversation(BaseModel):
    id: str
    animal_id: str
    animal_name: str
    animal_image: str
    adopter_id: str
    adopter_name: str
    advertiser_id: str
    advertiser_name: str
    last_message: Optional[str] = None
    last_message_date: Optional[datetime] = None
    unread_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SimpleMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    content: str
    created_at: Optional[datetime] = None
