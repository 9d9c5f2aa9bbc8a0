"""
Moderation operations. Everything here runs on the privileged (service-role)
client so row-level security does not hide other users' data.
"""

import logging
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, List

from adotai.core.errors import backend_failure
from adotai.modules.admin.schemas import ActivityEntry, AdminStats
from adotai.modules.adoption_requests.schemas import AdoptionRequestResponse
from adotai.modules.adoption_requests.service import REQUEST_WITH_JOINS, flatten_request
from adotai.modules.animals.schemas import AnimalResponse
from adotai.modules.animals.service import ANIMAL_WITH_ADVERTISER, flatten_animal
from adotai.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5


class AdminService:
    def __init__(self, admin_supabase: Client):
        self.supabase = admin_supabase

    def admin_get_all_users(self) -> List[UserResponse]:
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch users", e)
        return [UserResponse(**row) for row in result.data or []]

    def admin_get_all_animals(self) -> List[AnimalResponse]:
        try:
            result = self.supabase.table("animals")\
                .select(ANIMAL_WITH_ADVERTISER)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch animals", e)
        animals = []
        for row in result.data or []:
            has_advertiser = bool(row.get("advertiser"))
            flat = flatten_animal(row)
            if not has_advertiser:
                flat["advertiser_name"] = "N/A"
            animals.append(AnimalResponse(**flat))
        return animals

    def admin_get_all_adoption_requests(self) -> List[AdoptionRequestResponse]:
        try:
            result = self.supabase.table("adoption_requests")\
                .select(REQUEST_WITH_JOINS)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch adoption requests", e)
        return [AdoptionRequestResponse(**flatten_request(row)) for row in result.data or []]

    def admin_get_recent_activity(self) -> List[ActivityEntry]:
        """Newest entries of the activity log"""
        try:
            result = self.supabase.table("activity_log")\
                .select("*")\
                .order("created_at", desc=True)\
                .limit(RECENT_ACTIVITY_LIMIT)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch recent activity", e)
        return [ActivityEntry(**row) for row in result.data or []]

    def admin_get_stats(self) -> AdminStats:
        users = self.admin_get_all_users()
        animals = self.admin_get_all_animals()
        try:
            reports = self.supabase.table("reports")\
                .select("id, reported_animal_id")\
                .execute().data or []
        except Exception as e:
            raise backend_failure("fetch reports", e)
        reported_animals = {r["reported_animal_id"] for r in reports if r.get("reported_animal_id")}
        return AdminStats(
            total_users=len(users),
            active_users=len([u for u in users if u.status != "blocked"]),
            blocked_users=len([u for u in users if u.status == "blocked"]),
            total_ads=len(animals),
            available_ads=len([a for a in animals if a.status == "available"]),
            reported_ads=len([a for a in animals if a.id in reported_animals]),
            total_reports=len(reports)
        )

    def block_user(self, user_id: str) -> UserResponse:
        logger.info(f"Blocking user {user_id}")
        return self._set_user_status(user_id, "blocked")

    def unblock_user(self, user_id: str) -> UserResponse:
        logger.info(f"Unblocking user {user_id}")
        return self._set_user_status(user_id, "active")

    def _set_user_status(self, user_id: str, status: str) -> UserResponse:
        try:
            result = self.supabase.table("profiles")\
                .update({"status": status, "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise backend_failure("update user status", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        return UserResponse(**result.data[0])

    def delete_user(self, user_id: str) -> bool:
        """
        Delete the profile row and the auth identity behind it. If the identity
        cannot be removed the profile row is put back.
        """
        try:
            result = self.supabase.table("profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise backend_failure("delete user", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        try:
            self.supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Auth identity removal failed for {user_id}; restoring profile: {e}")
            self._restore_profile(result.data[0])
            raise backend_failure("delete auth user", e)

        logger.info(f"User {user_id} deleted")
        return True

    def _restore_profile(self, profile: Dict[str, Any]):
        try:
            self.supabase.table("profiles").insert(profile).execute()
        except Exception as e:
            logger.error(f"Could not restore profile {profile.get('id')}: {e}")

    def remove_animal(self, animal_id: str) -> AnimalResponse:
        """Soft-remove a listing; it stays in the table with status 'removed'"""
        try:
            result = self.supabase.table("animals")\
                .update({"status": "removed", "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", animal_id)\
                .execute()
        except Exception as e:
            raise backend_failure("remove animal", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="Animal not found")

        return AnimalResponse(**result.data[0])
