import pytest
from fastapi import HTTPException

from adotai.core.capabilities import ViewCapabilities
from adotai.core.errors import AdoptionCascadeError, UnauthorizedError, UNAUTHORIZED_REQUESTS_MESSAGE
from adotai.modules.adoption_requests.schemas import AdoptionRequestCreate, AdoptionRequestUpdate
from adotai.modules.adoption_requests.service import AdoptionRequestService, DEFAULT_REQUEST_MESSAGE
from tests.fakes import identity_of


@pytest.fixture
def service(supabase, admin_supabase):
    return AdoptionRequestService(supabase, admin_supabase)


@pytest.fixture
def requests(db, animal, adopter):
    others = [
        db.add("profiles", id=f"ado-{n}", email=f"ado{n}@example.com", name=f"Adopter {n}", type="adopter")
        for n in (2, 3)
    ]
    return [
        db.add("adoption_requests", animal_id=animal["id"], adopter_id=profile["id"], status="pending", message="Hi")
        for profile in [adopter] + others
    ]


def statuses(db, rows):
    return [db.get("adoption_requests", r["id"])["status"] for r in rows]


class TestApprovalCascade:
    def test_one_approved_rest_rejected_animal_adopted(self, db, service, animal, requests):
        r1, r2, r3 = requests
        approved = service.approve_adoption_request(r2["id"])

        assert approved.status == "approved"
        assert statuses(db, requests) == ["rejected", "approved", "rejected"]
        assert db.get("animals", animal["id"])["status"] == "adopted"

    def test_approving_twice_is_a_no_op(self, db, service, requests):
        service.approve_adoption_request(requests[0]["id"])
        writes = db.count("adoption_requests", "update")
        service.approve_adoption_request(requests[0]["id"])
        assert db.count("adoption_requests", "update") == writes

    def test_already_approved_sibling_aborts_before_writing(self, db, service, animal, requests):
        db.get("adoption_requests", requests[0]["id"])["status"] = "approved"
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.approve_adoption_request(requests[1]["id"])
        assert exc_info.value.status_code == 409
        assert db.count("adoption_requests", "update") == 0
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_animal_update_failure_reverts_completed_steps(self, db, service, animal, requests):
        db.fail("animals", "update")
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.approve_adoption_request(requests[1]["id"])

        assert exc_info.value.status_code == 500
        assert exc_info.value.rolled_back is True
        assert statuses(db, requests) == ["pending", "pending", "pending"]
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_sibling_rejection_failure_reverts_approval(self, db, service, animal, requests):
        db.fail("adoption_requests", "update", when=lambda payload: payload.get("status") == "rejected")
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.approve_adoption_request(requests[1]["id"])

        assert exc_info.value.rolled_back is True
        assert statuses(db, requests) == ["pending", "pending", "pending"]
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_failed_compensation_is_reported(self, db, service, requests):
        db.fail("animals", "update")
        db.fail("adoption_requests", "update", when=lambda payload: payload.get("status") == "pending", times=5)
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.approve_adoption_request(requests[1]["id"])
        assert exc_info.value.rolled_back is False

    def test_update_with_approved_status_runs_the_cascade(self, db, service, animal, requests):
        result = service.update_adoption_request(
            requests[0]["id"], AdoptionRequestUpdate(status="approved", status_message="Welcome!")
        )
        assert result.status == "approved"
        assert result.status_message == "Welcome!"
        assert statuses(db, requests) == ["approved", "rejected", "rejected"]
        assert db.get("animals", animal["id"])["status"] == "adopted"

    def test_reject(self, db, service, animal, requests):
        assert service.reject_adoption_request(requests[0]["id"]).status == "rejected"
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_rejecting_approved_request_makes_animal_available(self, db, service, animal, requests):
        service.approve_adoption_request(requests[0]["id"])
        result = service.reject_adoption_request(requests[0]["id"])

        assert result.status == "rejected"
        assert "approved" not in statuses(db, requests)
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_reverting_approval_to_pending_makes_animal_available(self, db, service, animal, requests):
        service.approve_adoption_request(requests[0]["id"])
        result = service.update_adoption_request(requests[0]["id"], AdoptionRequestUpdate(status="pending"))

        assert result.status == "pending"
        assert db.get("animals", animal["id"])["status"] == "available"

    def test_withdrawal_failure_restores_approval(self, db, service, animal, requests):
        service.approve_adoption_request(requests[0]["id"])
        db.fail("animals", "update")
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.reject_adoption_request(requests[0]["id"])

        assert exc_info.value.rolled_back is True
        assert db.get("adoption_requests", requests[0]["id"])["status"] == "approved"
        assert db.get("animals", animal["id"])["status"] == "adopted"

    @pytest.mark.parametrize("animal_status", ["removed", "adopted"])
    def test_unavailable_animal_cannot_be_approved(self, db, service, animal, requests, animal_status):
        db.get("animals", animal["id"])["status"] = animal_status
        with pytest.raises(AdoptionCascadeError) as exc_info:
            service.approve_adoption_request(requests[0]["id"])

        assert exc_info.value.status_code == 409
        assert db.count("adoption_requests", "update") == 0
        assert db.get("animals", animal["id"])["status"] == animal_status

    def test_unknown_request(self, service):
        with pytest.raises(HTTPException) as exc_info:
            service.approve_adoption_request("missing")
        assert exc_info.value.status_code == 404


class TestCreate:
    def test_adopter_submits_request(self, service, adopter, animal):
        created = service.create_adoption_request(
            identity_of(adopter), AdoptionRequestCreate(animal_id=animal["id"])
        )
        assert created.status == "pending"
        assert created.adopter_id == adopter["id"]
        assert created.message == DEFAULT_REQUEST_MESSAGE

    def test_reason_used_as_message(self, service, adopter, animal):
        created = service.create_adoption_request(
            identity_of(adopter), AdoptionRequestCreate(animal_id=animal["id"], reason="Big garden")
        )
        assert created.message == "Big garden"

    def test_advertisers_cannot_request(self, service, advertiser, animal):
        with pytest.raises(UnauthorizedError):
            service.create_adoption_request(identity_of(advertiser), AdoptionRequestCreate(animal_id=animal["id"]))

    def test_animal_must_exist(self, service, adopter):
        with pytest.raises(HTTPException) as exc_info:
            service.create_adoption_request(identity_of(adopter), AdoptionRequestCreate(animal_id="missing"))
        assert exc_info.value.status_code == 404

    def test_adopted_animal_is_unavailable(self, db, service, adopter, animal):
        db.get("animals", animal["id"])["status"] = "adopted"
        with pytest.raises(HTTPException) as exc_info:
            service.create_adoption_request(identity_of(adopter), AdoptionRequestCreate(animal_id=animal["id"]))
        assert exc_info.value.status_code == 409


class TestListing:
    def test_adopter_sees_own_requests_denormalized(self, service, adopter, requests):
        result = service.get_adoption_requests(identity_of(adopter))
        assert [r.id for r in result] == [requests[0]["id"]]
        assert result[0].animal_name == "Rex"
        assert result[0].adopter_name == "Bruno"
        assert result[0].advertiser_name == "Ana"

    def test_view_and_join_agree(self, db, service, adopter, requests):
        from_join = service.get_adoption_requests(identity_of(adopter))[0]
        db.install_views()
        ViewCapabilities.reset()
        from_view = service.get_adoption_requests(identity_of(adopter))[0]
        assert from_view.model_dump() == from_join.model_dump()

    def test_advertiser_sees_requests_for_own_animals(self, db, service, advertiser, requests):
        other = db.add("profiles", id="adv-2", email="other@example.com", name="Other", type="advertiser")
        other_animal = db.add("animals", name="Nina", species="cat", status="available", advertiser_id=other["id"])
        db.add("adoption_requests", animal_id=other_animal["id"], adopter_id="ado-2", status="pending")

        result = service.get_advertiser_adoption_requests(identity_of(advertiser))

        assert {r.id for r in result} == {r["id"] for r in requests}

    def test_advertiser_without_animals(self, service, db):
        profile = db.add("profiles", id="adv-9", email="empty@example.com", name="Empty", type="advertiser")
        assert service.get_advertiser_adoption_requests(identity_of(profile)) == []

    def test_animal_requests_owner_only(self, service, adopter, advertiser, animal, requests):
        assert len(service.get_animal_adoption_requests(identity_of(advertiser), animal["id"])) == 3
        with pytest.raises(UnauthorizedError) as exc_info:
            service.get_animal_adoption_requests(identity_of(adopter), animal["id"])
        assert exc_info.value.detail == UNAUTHORIZED_REQUESTS_MESSAGE

    def test_get_adoption_request_not_found(self, service):
        with pytest.raises(HTTPException) as exc_info:
            service.get_adoption_request("missing")
        assert exc_info.value.status_code == 404
