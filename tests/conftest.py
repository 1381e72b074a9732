"""
Pytest configuration and shared fixtures.
"""
import pytest
from fastapi.testclient import TestClient

from avatar_backend.config import settings
from avatar_backend.core.dependencies import get_user_supabase
from avatar_backend.database.supabase_client import get_service_supabase
from avatar_backend.modules.auth.service import clear_auth_cache
from tests.fakes import FakeSupabase

REFERRER_ID = "11111111-1111-4111-8111-111111111111"
REFERRED_ID = "22222222-2222-4222-8222-222222222222"
OTHER_ID = "33333333-3333-4333-8333-333333333333"


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    """No outbound email and no cached tokens leaking between tests"""
    monkeypatch.setattr(settings, "resend_api_key", None)
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def referrer(fake_supabase):
    """Account that owns referral code ABC12345"""
    user = fake_supabase.add_user(
        REFERRER_ID, "anna@example.com", token="referrer-token",
        firstName="Anna", lastName="Nowak", referralCode="ABC12345",
    )
    fake_supabase.rows("profiles").append({
        "id": "profile-referrer",
        "user_id": REFERRER_ID,
        "referral_code": "ABC12345",
        "first_name": "Anna",
        "last_name": "Nowak",
    })
    return user


@pytest.fixture
def app_client(fake_supabase):
    from avatar_backend.main import app

    app.dependency_overrides[get_service_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_user_supabase] = lambda: fake_supabase
    app.state.limiter.reset()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
