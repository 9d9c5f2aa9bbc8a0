import hashlib
import logging
import time
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, Optional

from adotai.core.errors import (
    AuthenticationError, ProfileNotFoundError, ProfileSaveError, DatabaseNotConfiguredError,
    error_message
)
from adotai.core.profiles import ProfileResolver, ProfileNotFound
from adotai.modules.auth.schemas import SignupRequest, SignupResponse, SigninResponse
from adotai.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

# In-memory cache for get_identity to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_identity_cache():
    _AUTH_USER_CACHE.clear()


def _is_unconfirmed_email(message: str) -> bool:
    lowered = message.lower()
    return "email" in lowered and "not" in lowered and "confirm" in lowered


class AuthService:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.admin_supabase = admin_supabase
        self.profiles = ProfileResolver(supabase, admin_supabase)

    def signup(self, signup_data: SignupRequest) -> SignupResponse:
        """
        Two-phase signup: create the auth identity, then fill in the profile row
        the database trigger created for it. If the profile cannot be saved the
        identity is deleted again so no orphan login remains.
        """
        logger.info(f"Signing up {signup_data.email}")
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": signup_data.email,
                "password": signup_data.password,
            })
        except Exception as e:
            message = error_message(e)
            if "already registered" in message.lower() or "already exists" in message.lower():
                raise AuthenticationError("User already exists")
            raise AuthenticationError(f"Registration failed: {message}")

        if not auth_response.user:
            raise HTTPException(status_code=400, detail="Failed to create user in the authentication system")

        user_id = auth_response.user.id
        self._confirm_email(user_id)

        failure = None
        profile = None
        try:
            result = self.supabase.table("profiles")\
                .update({
                    "name": signup_data.name,
                    "type": signup_data.type,
                    "phone": signup_data.phone,
                    "address": signup_data.address,
                    "updated_at": datetime.utcnow().isoformat()
                })\
                .eq("id", user_id)\
                .execute()
            if result.data:
                profile = result.data[0]
            else:
                failure = "profile row was not created for this account"
        except Exception as e:
            failure = error_message(e)

        if failure:
            logger.error(f"Profile update failed for {user_id}: {failure}; deleting auth identity")
            self._delete_identity(user_id)
            raise ProfileSaveError(failure)

        return SignupResponse(user=UserResponse(**profile))

    def signin(self, email: str, password: str) -> SigninResponse:
        """Authenticate, then resolve the profile through the id/email/privileged fallback chain."""
        auth_response = self._sign_in(email, password, retry_unconfirmed=True)
        lookup = self.profiles.resolve(auth_response.user.id, email)
        if isinstance(lookup, ProfileNotFound):
            raise ProfileNotFoundError()
        user = UserResponse(**lookup.profile)
        return SigninResponse(
            access_token=auth_response.session.access_token,
            token_type="bearer",
            user=user,
            is_admin=user.type == "admin"
        )

    def _sign_in(self, email: str, password: str, retry_unconfirmed: bool):
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            message = error_message(e)
            if retry_unconfirmed and _is_unconfirmed_email(message):
                logger.info(f"Email not confirmed for {email}; confirming and retrying once")
                user_id = self._find_identity_id(email)
                if user_id and self._confirm_email(user_id):
                    return self._sign_in(email, password, retry_unconfirmed=False)
            lowered = message.lower()
            if "invalid login credentials" in lowered or ("invalid" in lowered and "credentials" in lowered):
                raise AuthenticationError("Invalid email or password")
            raise AuthenticationError(message)

        if not auth_response.user or not auth_response.session:
            raise AuthenticationError("Invalid credentials")
        return auth_response

    def _find_identity_id(self, email: str) -> Optional[str]:
        try:
            for user in self.admin_supabase.auth.admin.list_users():
                if (user.email or "").lower() == email.lower():
                    return user.id
        except Exception as e:
            logger.warning(f"Could not list auth users to confirm {email}: {e}")
        return None

    def _confirm_email(self, user_id: str) -> bool:
        """Best-effort auto-confirmation through the admin API."""
        try:
            self.admin_supabase.auth.admin.update_user_by_id(user_id, {"email_confirm": True})
            return True
        except Exception as e:
            logger.warning(f"Failed to auto-confirm email for {user_id}; manual confirmation may be needed: {e}")
            return False

    def _delete_identity(self, user_id: str):
        try:
            self.admin_supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Compensating delete of auth identity {user_id} failed: {e}")

    def signout(self, token: Optional[str] = None) -> bool:
        """Logout user using Supabase Auth"""
        if token:
            _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            # Supabase Auth tokens are stateless JWTs; the token expires on its own
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Sign out failed: {e}")
            return False

    def get_identity(self, token: str) -> Dict[str, Any]:
        """Get the auth identity behind a token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise AuthenticationError("Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
                "created_at": user.created_at,
                "updated_at": user.updated_at
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise AuthenticationError("Invalid or expired token")
            raise AuthenticationError("Authentication failed")

    def get_current_user(self, identity: Optional[Dict[str, Any]]) -> Optional[UserResponse]:
        """Resolve "am I logged in, and as whom". None when there is no identity."""
        if not identity:
            return None
        profile = self.profiles.require(identity["id"], identity.get("email"))
        return UserResponse(**profile)

    def initialize_data(self) -> bool:
        """Check the backend is reachable and the schema exists."""
        try:
            self.supabase.table("profiles").select("id").limit(1).execute()
        except Exception as e:
            logger.error(f"Database configuration check failed: {e}")
            raise DatabaseNotConfiguredError(error_message(e)) from e
        logger.info("Database is properly configured")
        return True
