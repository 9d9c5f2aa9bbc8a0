from fastapi import APIRouter, Depends, UploadFile, File
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.animals.schemas import AnimalCreate, AnimalUpdate, AnimalResponse
from adotai.modules.animals.service import AnimalService
from adotai.modules.storage.service import StorageService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import get_current_identity, require_role, is_admin
from supabase import Client
from typing import Dict, List

router = APIRouter(prefix="/animals", tags=["animals"])


def get_animal_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> AnimalService:
    return AnimalService(supabase, admin_supabase)


@router.get("", response_model=List[AnimalResponse])
async def list_animals(service: AnimalService = Depends(get_animal_service)):
    """All listings with advertiser contact fields"""
    return service.get_animals()


@router.get("/available", response_model=List[AnimalResponse])
async def list_available_animals(service: AnimalService = Depends(get_animal_service)):
    """Listings shown on the search page"""
    return service.get_available_animals()


@router.post("", response_model=AnimalResponse, status_code=201)
async def create_animal(
    animal_data: AnimalCreate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser")),
    service: AnimalService = Depends(get_animal_service)
):
    """Register a new animal (advertisers only)"""
    return service.create_animal(identity, animal_data)


@router.post("/photos", response_model=List[str], status_code=201)
async def upload_animal_photos(
    files: List[UploadFile] = File(...),
    profile: UserResponse = Depends(require_role("advertiser")),
    supabase: Client = Depends(get_supabase)
):
    """Upload photos; returns public URLs to use in image_url/additional_images"""
    uploads = [(f.filename or "photo", await f.read(), f.content_type) for f in files]
    return StorageService(supabase).upload_animal_photos(profile.id, uploads)


@router.get("/{animal_id}", response_model=AnimalResponse)
async def get_animal(animal_id: str, service: AnimalService = Depends(get_animal_service)):
    """Get animal by ID"""
    return service.get_animal(animal_id)


@router.put("/{animal_id}", response_model=AnimalResponse)
async def update_animal(
    animal_id: str,
    animal_data: AnimalUpdate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser", "admin")),
    service: AnimalService = Depends(get_animal_service)
):
    """Update animal (owner or admin)"""
    if not is_admin(profile):
        service.verify_ownership(identity, animal_id)
    return service.update_animal(animal_id, animal_data)


@router.delete("/{animal_id}", status_code=204)
async def delete_animal(
    animal_id: str,
    profile: UserResponse = Depends(require_role("admin")),
    service: AnimalService = Depends(get_animal_service)
):
    """Delete animal permanently (admin only)"""
    service.delete_animal(animal_id)
    return None
