from supabase import Client
from adotai.modules.users.schemas import UserUpdate, UserResponse
from adotai.core.errors import backend_failure
from typing import List
from datetime import datetime
from fastapi import HTTPException


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_users(self) -> List[UserResponse]:
        """List profiles, newest first"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
            return [UserResponse(**user) for user in result.data]
        except Exception as e:
            raise backend_failure("fetch users", e)

    def get_user(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch user", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        return UserResponse(**result.data[0])

    def update_profile(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update the editable profile fields"""
        update_data = {"updated_at": datetime.utcnow().isoformat()}
        update_data.update(user_data.model_dump(exclude_none=True))
        return self._update(user_id, update_data, "update profile")

    def update_user_avatar(self, user_id: str, avatar_url: str) -> UserResponse:
        return self._update(user_id, {"avatar_url": avatar_url}, "update avatar")

    def _update(self, user_id: str, update_data: dict, action: str) -> UserResponse:
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise backend_failure(action, e)

        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        return UserResponse(**result.data[0])
