"""
Profile resolution.

The profile row is created by a database trigger after the auth identity,
and the two ids are not guaranteed to match. Every caller that needs "the
profile behind this identity" goes through ``ProfileResolver`` which tries,
in order, and stops at the first hit:

1. profile by id (user client)
2. profile by email (user client, skipped without an email)
3. profile by id (privileged client, bypasses RLS)
"""

import logging
from pydantic import BaseModel
from supabase import Client
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from adotai.core.errors import ProfileNotFoundError, error_message

logger = logging.getLogger(__name__)


class ProfileFound(BaseModel):
    profile: Dict[str, Any]
    strategy: str

    @property
    def found(self) -> bool:
        return True


class ProfileNotFound(BaseModel):
    reasons: List[str] = []

    @property
    def found(self) -> bool:
        return False


ProfileLookup = Union[ProfileFound, ProfileNotFound]


def normalize_id(value: Any) -> str:
    return str(value if value is not None else "").strip()


class ProfileResolver:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.admin_supabase = admin_supabase

    def _lookup(self, client: Client, column: str, value: str, columns: str) -> Optional[Dict[str, Any]]:
        result = client.table("profiles")\
            .select(columns)\
            .eq(column, value)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _strategies(self, identity_id: Optional[str], email: Optional[str]) -> List[Tuple[str, Callable[[str], Optional[Dict[str, Any]]]]]:
        strategies = []
        if identity_id:
            strategies.append(("id", lambda cols: self._lookup(self.supabase, "id", identity_id, cols)))
        if email:
            strategies.append(("email", lambda cols: self._lookup(self.supabase, "email", email, cols)))
        if identity_id:
            strategies.append(("privileged_id", lambda cols: self._lookup(self.admin_supabase, "id", identity_id, cols)))
        return strategies

    def resolve(self, identity_id: Optional[str], email: Optional[str] = None, columns: str = "*") -> ProfileLookup:
        """Run the lookup strategies in order; never raises for backend errors."""
        reasons = []
        for name, lookup in self._strategies(identity_id, email):
            try:
                profile = lookup(columns)
            except Exception as e:
                reasons.append(f"{name}: {error_message(e)}")
                logger.info("Profile lookup by %s failed for %s: %s", name, identity_id or email, e)
                continue
            if profile:
                if name != "id":
                    logger.info("Profile for %s resolved by %s lookup", identity_id or email, name)
                return ProfileFound(profile=profile, strategy=name)
            reasons.append(f"{name}: no row")
        logger.error(f"Profile not found for identity {identity_id} ({email}): {reasons}")
        return ProfileNotFound(reasons=reasons)

    def require(self, identity_id: Optional[str], email: Optional[str] = None, columns: str = "*") -> Dict[str, Any]:
        lookup = self.resolve(identity_id, email, columns)
        if isinstance(lookup, ProfileNotFound):
            raise ProfileNotFoundError()
        return lookup.profile

    def candidate_ids(self, identity_id: Optional[str], email: Optional[str] = None) -> List[str]:
        """Normalized ids the identity may appear under: the auth id and the resolved profile id."""
        ids = []
        if normalize_id(identity_id):
            ids.append(normalize_id(identity_id))
        lookup = self.resolve(identity_id, email, columns="id")
        if isinstance(lookup, ProfileFound):
            profile_id = normalize_id(lookup.profile.get("id"))
            if profile_id and profile_id not in ids:
                ids.append(profile_id)
        return ids

