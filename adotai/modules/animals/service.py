import logging
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Dict, List

from adotai.config import settings
from adotai.core.errors import UnauthorizedError, backend_failure
from adotai.core.profiles import ProfileResolver, normalize_id
from adotai.core.queries import read_with_view_fallback, pop_embedded
from adotai.modules.animals.schemas import AnimalCreate, AnimalUpdate, AnimalResponse

logger = logging.getLogger(__name__)

ANIMAL_WITH_ADVERTISER = "*, advertiser:profiles!advertiser_id(name, email, phone, address)"


def flatten_animal(row: Dict[str, Any]) -> Dict[str, Any]:
    """Manual-join row -> same flat shape as the animals_with_advertiser view"""
    row = dict(row)
    advertiser = pop_embedded(row, "advertiser")
    row["advertiser_name"] = advertiser.get("name") or "Advertiser"
    row["advertiser_email"] = advertiser.get("email") or ""
    row["advertiser_phone"] = advertiser.get("phone") or ""
    row["advertiser_address"] = advertiser.get("address") or ""
    return row


class AnimalService:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.admin_supabase = admin_supabase
        self.profiles = ProfileResolver(supabase, admin_supabase)

    def get_animals(self) -> List[AnimalResponse]:
        """All listings with advertiser contact fields, newest first"""
        try:
            rows = read_with_view_fallback(
                self.supabase,
                settings.animals_view,
                lambda view: view.select("*").order("created_at", desc=True),
                lambda: self.supabase.table("animals")
                    .select(ANIMAL_WITH_ADVERTISER)
                    .order("created_at", desc=True),
                flatten_animal,
            )
            return [AnimalResponse(**row) for row in rows]
        except Exception as e:
            raise backend_failure("fetch animals", e)

    def get_available_animals(self) -> List[AnimalResponse]:
        return [animal for animal in self.get_animals() if animal.status == "available"]

    def get_animal(self, animal_id: str) -> AnimalResponse:
        try:
            rows = read_with_view_fallback(
                self.supabase,
                settings.animals_view,
                lambda view: view.select("*").eq("id", animal_id).limit(1),
                lambda: self.supabase.table("animals")
                    .select(ANIMAL_WITH_ADVERTISER)
                    .eq("id", animal_id)
                    .limit(1),
                flatten_animal,
            )
        except Exception as e:
            raise backend_failure("fetch animal", e)

        if not rows:
            raise HTTPException(status_code=404, detail="Animal not found")

        return AnimalResponse(**rows[0])

    def get_animal_owner(self, animal_id: str) -> Dict[str, Any]:
        """Minimal {id, advertiser_id} row used for ownership checks"""
        try:
            result = self.supabase.table("animals")\
                .select("id, advertiser_id, status")\
                .eq("id", animal_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch animal", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="Animal not found")

        return result.data[0]

    def verify_ownership(self, identity: Dict[str, Any], animal_id: str, detail: str = "Unauthorized: You can only manage your own animals") -> Dict[str, Any]:
        """
        Check the caller owns the animal. Ids are string-normalized, then the
        auth id and the resolved profile id are both accepted as the owner.
        """
        animal = self.get_animal_owner(animal_id)
        owner_id = normalize_id(animal.get("advertiser_id"))
        if owner_id and owner_id == normalize_id(identity.get("id")):
            return animal

        logger.info(f"Direct owner match failed for animal {animal_id}; trying profile lookup")
        if owner_id and owner_id in self.profiles.candidate_ids(identity.get("id"), identity.get("email")):
            return animal

        logger.error(
            f"Ownership verification failed: animal {animal_id} advertiser_id={owner_id!r}, "
            f"user={normalize_id(identity.get('id'))!r}, email={identity.get('email')}"
        )
        raise UnauthorizedError(detail)

    def create_animal(self, identity: Dict[str, Any], animal_data: AnimalCreate) -> AnimalResponse:
        """Create a listing owned by the caller's profile (advertisers only, at least one photo)"""
        profile = self.profiles.require(identity["id"], identity.get("email"), columns="id, type")
        if profile.get("type") != "advertiser":
            raise UnauthorizedError("Only advertisers can register animals")

        photos = [url for url in [animal_data.image_url, *animal_data.additional_images] if url]
        if not photos:
            raise HTTPException(status_code=400, detail="At least one photo is required")

        insert_data = animal_data.model_dump()
        insert_data["image_url"] = photos[0]
        insert_data["additional_images"] = [url for url in animal_data.additional_images if url != photos[0]]
        insert_data["advertiser_id"] = profile["id"]
        insert_data["status"] = "available"

        logger.info(f"Creating animal with advertiser_id: {profile['id']}")
        try:
            result = self.supabase.table("animals").insert(insert_data).execute()
        except Exception as e:
            logger.error(f"Error creating animal: {e}")
            raise backend_failure("create animal", e)

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create animal")

        return AnimalResponse(**result.data[0])

    def update_animal(self, animal_id: str, animal_data: AnimalUpdate) -> AnimalResponse:
        update_data = animal_data.model_dump(exclude_none=True)
        update_data["updated_at"] = datetime.utcnow().isoformat()
        return self.set_fields(animal_id, update_data)

    def set_fields(self, animal_id: str, update_data: Dict[str, Any], client: Client = None) -> AnimalResponse:
        try:
            result = (client or self.supabase).table("animals")\
                .update(update_data)\
                .eq("id", animal_id)\
                .execute()
        except Exception as e:
            raise backend_failure("update animal", e)

        if not result.data:
            raise HTTPException(status_code=404, detail="Animal not found")

        return AnimalResponse(**result.data[0])

    def delete_animal(self, animal_id: str) -> bool:
        """Hard delete; only exposed to admins"""
        try:
            result = self.admin_supabase.table("animals")\
                .delete()\
                .eq("id", animal_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            raise backend_failure("delete animal", e)
