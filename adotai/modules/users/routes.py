from fastapi import APIRouter, Depends, UploadFile, File
from adotai.database.supabase_client import get_supabase
from adotai.modules.users.schemas import UserUpdate, UserResponse
from adotai.modules.users.service import UserService
from adotai.modules.storage.service import StorageService
from adotai.core.dependencies import get_current_profile
from supabase import Client
from typing import List

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


def get_storage_service(supabase: Client = Depends(get_supabase)) -> StorageService:
    return StorageService(supabase)


@router.get("", response_model=List[UserResponse])
async def list_users(
    profile: UserResponse = Depends(get_current_profile),
    service: UserService = Depends(get_user_service)
):
    """List profiles visible to the caller"""
    return service.get_users()


@router.put("/me", response_model=UserResponse)
async def update_my_profile(
    user_data: UserUpdate,
    profile: UserResponse = Depends(get_current_profile),
    service: UserService = Depends(get_user_service)
):
    """Update the caller's own profile"""
    return service.update_profile(profile.id, user_data)


@router.post("/me/avatar", response_model=UserResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    profile: UserResponse = Depends(get_current_profile),
    service: UserService = Depends(get_user_service),
    storage: StorageService = Depends(get_storage_service)
):
    """Upload a new avatar and store its public URL on the profile"""
    content = await file.read()
    avatar_url = storage.upload_avatar(profile.id, (file.filename or "avatar", content, file.content_type))
    return service.update_user_avatar(profile.id, avatar_url)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    profile: UserResponse = Depends(get_current_profile),
    service: UserService = Depends(get_user_service)
):
    """Get a profile by ID (e.g. an advertiser's public profile)"""
    return service.get_user(user_id)
