from fastapi import APIRouter, Depends
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.reports.schemas import ReportCreate, ReportResponse
from adotai.modules.reports.service import ReportService
from adotai.core.dependencies import get_current_identity, get_current_profile
from adotai.modules.users.schemas import UserResponse
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/reports", tags=["reports"])


def get_report_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> ReportService:
    return ReportService(supabase, admin_supabase)


@router.post("", response_model=ReportResponse, status_code=201)
async def create_report(
    report_data: ReportCreate,
    identity: Dict = Depends(get_current_identity),
    profile: UserResponse = Depends(get_current_profile),
    service: ReportService = Depends(get_report_service)
):
    """Report an animal listing or a user"""
    return service.create_report(identity, report_data)
