from fastapi import APIRouter, Depends
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.admin.schemas import ActivityEntry, AdminStats
from adotai.modules.admin.service import AdminService
from adotai.modules.adoption_requests.schemas import AdoptionRequestResponse
from adotai.modules.animals.schemas import AnimalResponse
from adotai.modules.reports.schemas import ReportResponse, ReportStatus, ReportStatusUpdate
from adotai.modules.reports.service import ReportService
from adotai.modules.users.schemas import UserResponse
from adotai.core.dependencies import require_role
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(admin_supabase: Client = Depends(get_service_supabase)) -> AdminService:
    return AdminService(admin_supabase)


def get_report_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> ReportService:
    return ReportService(supabase, admin_supabase)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.admin_get_all_users()


@router.get("/animals", response_model=List[AnimalResponse])
async def list_animals(
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.admin_get_all_animals()


@router.get("/adoption-requests", response_model=List[AdoptionRequestResponse])
async def list_adoption_requests(
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.admin_get_all_adoption_requests()


@router.get("/activity", response_model=List[ActivityEntry])
async def recent_activity(
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    """Five most recent activity log entries"""
    return service.admin_get_recent_activity()


@router.get("/stats", response_model=AdminStats)
async def stats(
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.admin_get_stats()


@router.post("/users/{user_id}/block", response_model=UserResponse)
async def block_user(
    user_id: str,
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.block_user(user_id)


@router.post("/users/{user_id}/unblock", response_model=UserResponse)
async def unblock_user(
    user_id: str,
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    return service.unblock_user(user_id)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    """Delete a user's profile and auth account"""
    service.delete_user(user_id)
    return None


@router.post("/animals/{animal_id}/remove", response_model=AnimalResponse)
async def remove_animal(
    animal_id: str,
    profile: UserResponse = Depends(require_role("admin")),
    service: AdminService = Depends(get_admin_service)
):
    """Take a listing down (status 'removed')"""
    return service.remove_animal(animal_id)


@router.get("/reports", response_model=List[ReportResponse])
async def list_reports(
    status: Optional[ReportStatus] = None,
    profile: UserResponse = Depends(require_role("admin")),
    service: ReportService = Depends(get_report_service)
):
    return service.list_reports(status)


@router.put("/reports/{report_id}", response_model=ReportResponse)
async def update_report(
    report_id: str,
    update: ReportStatusUpdate,
    profile: UserResponse = Depends(require_role("admin")),
    service: ReportService = Depends(get_report_service)
):
    return service.update_report_status(report_id, update.status)
