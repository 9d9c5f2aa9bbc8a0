from fastapi import APIRouter, Depends
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.adoption_requests.schemas import (
    AdoptionRequestCreate, AdoptionRequestUpdate, AdoptionRequestResponse
)
from adotai.modules.adoption_requests.service import AdoptionRequestService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import get_current_identity, require_role, is_admin
from supabase import Client
from typing import Dict, List

router = APIRouter(tags=["adoption-requests"])


def get_request_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> AdoptionRequestService:
    return AdoptionRequestService(supabase, admin_supabase)


def _authorize_manage(request_id: str, identity: Dict, profile: UserResponse, service: AdoptionRequestService):
    """Advertisers may only act on requests for their own animals; admins on any"""
    if is_admin(profile):
        return
    request = service.get_adoption_request(request_id)
    service.animals.verify_ownership(identity, request.animal_id)


@router.get("/adoption-requests/mine", response_model=List[AdoptionRequestResponse])
async def list_my_requests(
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("adopter")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Requests submitted by the caller"""
    return service.get_adoption_requests(identity)


@router.get("/adoption-requests/received", response_model=List[AdoptionRequestResponse])
async def list_received_requests(
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Requests for all of the caller's animals"""
    return service.get_advertiser_adoption_requests(identity)


@router.get("/animals/{animal_id}/adoption-requests", response_model=List[AdoptionRequestResponse])
async def list_animal_requests(
    animal_id: str,
    identity: Dict = Depends(get_current_identity),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Requests for one animal (owner only)"""
    return service.get_animal_adoption_requests(identity, animal_id)


@router.post("/adoption-requests", response_model=AdoptionRequestResponse, status_code=201)
async def create_request(
    request_data: AdoptionRequestCreate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("adopter")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Submit an adoption request"""
    return service.create_adoption_request(identity, request_data)


@router.get("/adoption-requests/{request_id}", response_model=AdoptionRequestResponse)
async def get_request(
    request_id: str,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("adopter", "advertiser", "admin")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Get request details"""
    return service.get_adoption_request(request_id)


@router.put("/adoption-requests/{request_id}", response_model=AdoptionRequestResponse)
async def update_request(
    request_id: str,
    request_data: AdoptionRequestUpdate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser", "admin")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Update status message, scheduled visit or status"""
    _authorize_manage(request_id, identity, profile, service)
    return service.update_adoption_request(request_id, request_data)


@router.post("/adoption-requests/{request_id}/approve", response_model=AdoptionRequestResponse)
async def approve_request(
    request_id: str,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser", "admin")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Approve; rejects other pending requests and marks the animal adopted"""
    _authorize_manage(request_id, identity, profile, service)
    return service.approve_adoption_request(request_id)


@router.post("/adoption-requests/{request_id}/reject", response_model=AdoptionRequestResponse)
async def reject_request(
    request_id: str,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(require_role("advertiser", "admin")),
    service: AdoptionRequestService = Depends(get_request_service)
):
    """Reject a request"""
    _authorize_manage(request_id, identity, profile, service)
    return service.reject_adoption_request(request_id)
