import logging
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, List, Optional

from adotai.core.errors import backend_failure
from adotai.core.profiles import ProfileResolver
from adotai.modules.reports.schemas import ReportCreate, ReportResponse

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.admin_supabase = admin_supabase
        self.profiles = ProfileResolver(supabase, admin_supabase)

    def create_report(self, identity: Dict[str, Any], report_data: ReportCreate) -> ReportResponse:
        """File a report against a listing or a user"""
        if not report_data.reported_animal_id and not report_data.reported_user_id:
            raise HTTPException(status_code=400, detail="A reported animal or user is required")

        reporter = self.profiles.require(identity["id"], identity.get("email"), columns="id")
        insert_data = {
            "reporter_id": reporter["id"],
            "reported_animal_id": report_data.reported_animal_id,
            "reported_user_id": report_data.reported_user_id,
            "reason": report_data.reason,
            "status": "pending"
        }
        try:
            result = self.supabase.table("reports").insert(insert_data).execute()
        except Exception as e:
            logger.error(f"Error creating report: {e}")
            raise backend_failure("create report", e)

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create report")

        logger.info(f"Report {result.data[0]['id']} filed by {reporter['id']}")
        return ReportResponse(**result.data[0])

    def list_reports(self, status: Optional[str] = None) -> List[ReportResponse]:
        """Reports for moderation, newest first (privileged client)"""
        try:
            query = self.admin_supabase.table("reports").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            raise backend_failure("fetch reports", e)
        return [ReportResponse(**row) for row in result.data or []]

    def update_report_status(self, report_id: str, status: str) -> ReportResponse:
        try:
            result = self.admin_supabase.table("reports")\
                .update({"status": status, "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", report_id)\
                .execute()
        except Exception as e:
            raise backend_failure("update report", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="Report not found")

        return ReportResponse(**result.data[0])
