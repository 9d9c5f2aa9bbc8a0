import logging
from datetime import datetime
from fastapi import HTTPException
from supabase import Client
from typing import Any, Callable, Dict, List, Tuple

from adotai.config import settings
from adotai.core.errors import (
    AdoptionCascadeError, UnauthorizedError, UNAUTHORIZED_REQUESTS_MESSAGE,
    backend_failure, error_message
)
from adotai.core.profiles import ProfileResolver
from adotai.core.queries import read_with_view_fallback, pop_embedded
from adotai.modules.adoption_requests.schemas import (
    AdoptionRequestCreate, AdoptionRequestUpdate, AdoptionRequestResponse
)
from adotai.modules.animals.service import AnimalService

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_MESSAGE = "Adoption request"

REQUEST_WITH_JOINS = (
    "*, "
    "animal:animals(name, species, breed, image_url, advertiser_id, "
    "advertiser:profiles!advertiser_id(name, email)), "
    "adopter:profiles!adopter_id(name, email, phone)"
)


def flatten_request(row: Dict[str, Any]) -> Dict[str, Any]:
    """Manual-join row -> same flat shape as the adoption_requests_detailed view"""
    row = dict(row)
    animal = pop_embedded(row, "animal")
    adopter = pop_embedded(row, "adopter")
    advertiser = pop_embedded(animal, "advertiser")
    row["animal_name"] = animal.get("name")
    row["animal_species"] = animal.get("species")
    row["animal_breed"] = animal.get("breed")
    row["animal_image_url"] = animal.get("image_url")
    row["adopter_name"] = adopter.get("name")
    row["adopter_email"] = adopter.get("email")
    row["adopter_phone"] = adopter.get("phone")
    row["advertiser_id"] = animal.get("advertiser_id")
    row["advertiser_name"] = advertiser.get("name")
    row["advertiser_email"] = advertiser.get("email")
    return row


class AdoptionRequestService:
    def __init__(self, supabase: Client, admin_supabase: Client):
        self.supabase = supabase
        self.admin_supabase = admin_supabase
        self.profiles = ProfileResolver(supabase, admin_supabase)
        self.animals = AnimalService(supabase, admin_supabase)

    def _read(self, filters: Callable[[Any], Any]) -> List[AdoptionRequestResponse]:
        rows = read_with_view_fallback(
            self.supabase,
            settings.adoption_requests_view,
            lambda view: filters(view.select("*")).order("created_at", desc=True),
            lambda: filters(self.supabase.table("adoption_requests").select(REQUEST_WITH_JOINS))
                .order("created_at", desc=True),
            flatten_request,
        )
        return [AdoptionRequestResponse(**row) for row in rows]

    def get_adoption_requests(self, identity: Dict[str, Any]) -> List[AdoptionRequestResponse]:
        """Requests the caller made as an adopter"""
        profile = self.profiles.require(identity["id"], identity.get("email"), columns="id")
        try:
            return self._read(lambda q: q.eq("adopter_id", profile["id"]))
        except Exception as e:
            raise backend_failure("fetch adoption requests", e)

    def get_advertiser_adoption_requests(self, identity: Dict[str, Any]) -> List[AdoptionRequestResponse]:
        """Requests received for any of the caller's animals"""
        profile = self.profiles.require(identity["id"], identity.get("email"), columns="id")
        try:
            animals_result = self.supabase.table("animals")\
                .select("id")\
                .eq("advertiser_id", profile["id"])\
                .execute()
        except Exception as e:
            raise backend_failure("fetch user animals", e)

        animal_ids = [animal["id"] for animal in animals_result.data or []]
        logger.info(f"Advertiser {profile['id']} has {len(animal_ids)} animal(s)")
        if not animal_ids:
            return []

        try:
            return self._read(lambda q: q.in_("animal_id", animal_ids))
        except Exception as e:
            raise backend_failure("fetch advertiser adoption requests", e)

    def get_animal_adoption_requests(self, identity: Dict[str, Any], animal_id: str) -> List[AdoptionRequestResponse]:
        """Requests for one animal; the caller must own it"""
        self.animals.verify_ownership(identity, animal_id, UNAUTHORIZED_REQUESTS_MESSAGE)
        try:
            return self._read(lambda q: q.eq("animal_id", animal_id))
        except Exception as e:
            raise backend_failure("fetch animal adoption requests", e)

    def get_adoption_request(self, request_id: str) -> AdoptionRequestResponse:
        try:
            requests = self._read(lambda q: q.eq("id", request_id))
        except Exception as e:
            raise backend_failure("fetch adoption request", e)
        if not requests:
            raise HTTPException(status_code=404, detail="Adoption request not found")
        return requests[0]

    def create_adoption_request(self, identity: Dict[str, Any], request_data: AdoptionRequestCreate) -> AdoptionRequestResponse:
        profile = self.profiles.require(identity["id"], identity.get("email"), columns="id, type")
        if profile.get("type") != "adopter":
            raise UnauthorizedError("Only adopters can request an adoption")

        animal = self.animals.get_animal_owner(request_data.animal_id)
        if animal.get("status") not in (None, "available"):
            raise HTTPException(status_code=409, detail="This animal is no longer available for adoption")

        insert_data = {
            "animal_id": request_data.animal_id,
            "adopter_id": profile["id"],
            "status": "pending",
            "message": request_data.message or request_data.reason or DEFAULT_REQUEST_MESSAGE
        }
        logger.info(f"Creating adoption request for animal {request_data.animal_id} by {profile['id']}")
        try:
            result = self.supabase.table("adoption_requests").insert(insert_data).execute()
        except Exception as e:
            logger.error(f"Error creating adoption request: {e}")
            raise backend_failure("create adoption request", e)

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create adoption request")

        return AdoptionRequestResponse(**result.data[0])

    def update_adoption_request(self, request_id: str, request_data: AdoptionRequestUpdate) -> AdoptionRequestResponse:
        """Update fields; an approval goes through the cascade so the invariant holds"""
        update_data = request_data.model_dump(mode="json", exclude_none=True)
        new_status = update_data.pop("status", None)
        if update_data:
            update_data["updated_at"] = datetime.utcnow().isoformat()
            self._update(request_id, update_data)
        if new_status == "approved":
            return self.approve_adoption_request(request_id)
        if new_status:
            self._change_status(request_id, new_status)
        return self.get_adoption_request(request_id)

    def reject_adoption_request(self, request_id: str) -> AdoptionRequestResponse:
        self._change_status(request_id, "rejected")
        return self.get_adoption_request(request_id)

    def _change_status(self, request_id: str, new_status: str):
        request = self._get_row(request_id)
        if request["status"] == "approved" and new_status != "approved":
            self._withdraw_approval(request, new_status)
        else:
            self._set_status(request_id, new_status)

    def _withdraw_approval(self, request: Dict[str, Any], new_status: str):
        """
        Move an approved request back to pending/rejected and put the animal
        back on the market. Siblings rejected by the approval stay rejected.
        """
        request_id = request["id"]
        animal_id = request["animal_id"]
        animal = self.animals.get_animal_owner(animal_id)

        completed: List[Tuple[str, Callable[[], Any]]] = []
        try:
            self._set_status(request_id, new_status)
            completed.append((f"{new_status} {request_id}", lambda: self._set_status(request_id, "approved")))
            if animal.get("status") == "adopted":
                self.animals.set_fields(animal_id, {"status": "available", "updated_at": datetime.utcnow().isoformat()})
        except Exception as e:
            logger.error(f"Withdrawing approval of {request_id} failed: {e}")
            rolled_back = self._compensate(completed)
            raise AdoptionCascadeError(
                f"Failed to withdraw adoption approval: {error_message(e)}",
                rolled_back=rolled_back
            )
        logger.info(f"Approval of request {request_id} withdrawn ({new_status}) for animal {animal_id}")

    def approve_adoption_request(self, request_id: str) -> AdoptionRequestResponse:
        """
        Approve one request, reject the other pending requests for the same
        animal and mark the animal adopted. Steps run in order; if one fails,
        the completed ones are reverted in reverse order.
        """
        request = self._get_row(request_id)
        if request["status"] == "approved":
            return self.get_adoption_request(request_id)

        animal_id = request["animal_id"]
        try:
            siblings = self.supabase.table("adoption_requests")\
                .select("id, status")\
                .eq("animal_id", animal_id)\
                .execute().data or []
        except Exception as e:
            raise backend_failure("fetch adoption requests", e)

        if any(s["status"] == "approved" and s["id"] != request_id for s in siblings):
            raise AdoptionCascadeError(
                "Another adoption request for this animal is already approved",
                status_code=409
            )
        animal = self.animals.get_animal_owner(animal_id)
        if animal.get("status") in ("adopted", "removed"):
            raise AdoptionCascadeError(
                f"This animal is {animal['status']} and cannot be adopted",
                status_code=409
            )
        pending = [s for s in siblings if s["status"] == "pending" and s["id"] != request_id]

        completed: List[Tuple[str, Callable[[], Any]]] = []
        try:
            self._set_status(request_id, "approved")
            completed.append((f"approve {request_id}", lambda: self._set_status(request_id, request["status"])))
            for sibling in pending:
                self._set_status(sibling["id"], "rejected")
                completed.append((
                    f"reject {sibling['id']}",
                    lambda sibling_id=sibling["id"]: self._set_status(sibling_id, "pending")
                ))
            self.animals.set_fields(animal_id, {"status": "adopted", "updated_at": datetime.utcnow().isoformat()})
        except Exception as e:
            logger.error(f"Approval of {request_id} failed after {len(completed)} step(s): {e}")
            rolled_back = self._compensate(completed)
            raise AdoptionCascadeError(
                f"Failed to approve adoption request: {error_message(e)}",
                rolled_back=rolled_back
            )

        logger.info(f"Request {request_id} approved; {len(pending)} sibling(s) rejected; animal {animal_id} adopted (was {animal.get('status')})")
        return self.get_adoption_request(request_id)

    def _compensate(self, completed: List[Tuple[str, Callable[[], Any]]]) -> bool:
        ok = True
        for description, undo in reversed(completed):
            try:
                undo()
            except Exception as e:
                ok = False
                logger.error(f"Could not revert step '{description}': {e}")
        return ok

    def _get_row(self, request_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("adoption_requests")\
                .select("*")\
                .eq("id", request_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise backend_failure("fetch adoption request", e)
        if not result.data:
            raise HTTPException(status_code=404, detail="Adoption request not found")
        return result.data[0]

    def _set_status(self, request_id: str, status: str) -> Dict[str, Any]:
        return self._update(request_id, {"status": status, "updated_at": datetime.utcnow().isoformat()})

    def _update(self, request_id: str, update_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.supabase.table("adoption_requests")\
                .update(update_data)\
                .eq("id", request_id)\
                .execute()
        except Exception as e:
            raise backend_failure("update adoption request", e)
        if not result.data:
            raise HTTPException(status_code=404, detail="Adoption request not found")
        return result.data[0]
