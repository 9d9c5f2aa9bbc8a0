from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime

AnimalStatus = Literal["available", "pending", "adopted", "removed"]


class AnimalCreate(BaseModel):
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[int] = None
    size: Optional[str] = None
    gender: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    additional_images: List[str] = []
    characteristics: List[str] = []
    special_needs: Optional[str] = None


class AnimalUpdate(BaseModel):
    name: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None
    age: Optional[int] = None
    size: Optional[str] = None
    gender: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    additional_images: Optional[List[str]] = None
    characteristics: Optional[List[str]] = None
    special_needs: Optional[str] = None
    status: Optional[AnimalStatus] = None


class AnimalResponse(BaseModel):
    id: str
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[int] = None
    size: Optional[str] = None
    gender: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    image_url: Optional[str] = None
    additional_images: Optional[List[str]] = None
    characteristics: Optional[List[str]] = None
    special_needs: Optional[str] = None
    status: AnimalStatus
    advertiser_id: str
    advertiser_name: Optional[str] = None  # From view/join
    advertiser_email: Optional[str] = None
    advertiser_phone: Optional[str] = None
    advertiser_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
