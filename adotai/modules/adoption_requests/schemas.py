from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime

RequestStatus = Literal["pending", "approved", "rejected"]


class AdoptionRequestCreate(BaseModel):
    animal_id: str
    message: Optional[str] = None
    reason: Optional[str] = None


class AdoptionRequestUpdate(BaseModel):
    status: Optional[RequestStatus] = None
    message: Optional[str] = None
    status_message: Optional[str] = None
    scheduled_visit: Optional[datetime] = None


class AdoptionRequestResponse(BaseModel):
    id: str
    animal_id: str
    adopter_id: str
    status: RequestStatus
    message: Optional[str] = None
    status_message: Optional[str] = None
    scheduled_visit: Optional[datetime] = None
    animal_name: Optional[str] = None  # From view/join
    animal_species: Optional[str] = None
    animal_breed: Optional[str] = None
    animal_image_url: Optional[str] = None
    adopter_name: Optional[str] = None
    adopter_email: Optional[str] = None
    adopter_phone: Optional[str] = None
    advertiser_id: Optional[str] = None
    advertiser_name: Optional[str] = None
    advertiser_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
