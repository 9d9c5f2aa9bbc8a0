"""
Core dependencies for route protection and role checking
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from adotai.database.supabase_client import get_supabase, get_service_supabase
from adotai.modules.auth.service import AuthService
from adotai.modules.users.schemas import UserResponse
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> AuthService:
    return AuthService(supabase, admin_supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_identity(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Auth identity (id, email, metadata) behind the bearer token"""
    return auth_service.get_identity(token)


def get_current_profile(
    identity: Dict[str, Any] = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    """Profile for the caller, resolved through the fallback chain"""
    return auth_service.get_current_user(identity)


def is_admin(profile: UserResponse) -> bool:
    return profile.type == "admin"


def require_role(*roles: str):
    """Factory function to create a role check dependency"""
    def check_role(profile: UserResponse = Depends(get_current_profile)) -> UserResponse:
        if profile.status == "blocked":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This account is blocked"
            )
        if profile.type not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {' or '.join(roles)}"
            )
        return profile
    return check_role
