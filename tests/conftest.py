import pytest

from adotai.core.capabilities import ViewCapabilities
from adotai.database.supabase_client import SupabaseClient
from adotai.modules.auth.service import clear_identity_cache
from tests.fakes import FakeDatabase, FakeSupabase


@pytest.fixture(autouse=True)
def reset_process_state():
    ViewCapabilities.reset()
    clear_identity_cache()
    SupabaseClient.reset_client()
    yield
    ViewCapabilities.reset()
    clear_identity_cache()


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def supabase(db):
    return FakeSupabase(db)


@pytest.fixture
def admin_supabase(db):
    return FakeSupabase(db, privileged=True)


@pytest.fixture
def advertiser(db):
    user = db.auth.create_user("ana@example.com", user_id="adv-1")
    return db.add("profiles", id=user.id, email=user.email, name="Ana", type="advertiser",
                  phone="1199999", address="Rua A", status="active")


@pytest.fixture
def adopter(db):
    user = db.auth.create_user("bruno@example.com", user_id="ado-1")
    return db.add("profiles", id=user.id, email=user.email, name="Bruno", type="adopter",
                  phone="1188888", address="Rua B", status="active")


@pytest.fixture
def admin(db):
    user = db.auth.create_user("admin@example.com", user_id="adm-1")
    return db.add("profiles", id=user.id, email=user.email, name="Admin", type="admin", status="active")


@pytest.fixture
def animal(db, advertiser):
    return db.add("animals", name="Rex", species="dog", breed="SRD", age=3,
                  image_url="https://img.example.com/rex.jpg", additional_images=[],
                  characteristics=["friendly"], status="available", advertiser_id=advertiser["id"])
