"""
Unit tests for the referral service.

Tests focus on:
- Post-signup attribution and its idempotence
- Referral code collisions
- Referral repair guards
- Ledger reads and activation
"""
import pytest
from unittest.mock import MagicMock, patch
from fastapi import HTTPException
from postgrest.exceptions import APIError

from avatar_backend.config import settings
from avatar_backend.modules.referrals.schemas import PostSignupRequest
from avatar_backend.modules.referrals.service import ReferralService, build_referral_link
from tests.conftest import OTHER_ID, REFERRED_ID, REFERRER_ID


def signup_request(**overrides) -> PostSignupRequest:
    body = {
        "userId": REFERRED_ID,
        "email": "jan@example.com",
        "firstName": "Jan",
        "lastName": "Kowalski",
        "phone": "+48 600 100 200",
        "referralCode": "NEWCODE1",
        "referredBy": "ABC12345",
    }
    body.update(overrides)
    return PostSignupRequest(**body)


@pytest.fixture
def referred_user(fake_supabase):
    return fake_supabase.add_user(
        REFERRED_ID, "Jan@Example.com",
        firstName="Jan", lastName="Kowalski", referralCode="NEWCODE1", referredBy="ABC12345",
    )


@pytest.fixture
def service(fake_supabase):
    return ReferralService(fake_supabase)


class TestPostSignup:
    def test_creates_profile_patient_and_referral(self, fake_supabase, service, referrer, referred_user):
        service.process_signup(signup_request())

        profile = next(p for p in fake_supabase.rows("profiles") if p["user_id"] == REFERRED_ID)
        assert profile["referral_code"] == "NEWCODE1"
        assert profile["phone"] == "+48 600 100 200"
        assert [p["user_id"] for p in fake_supabase.rows("patients")] == [REFERRED_ID]

        person_profiles = fake_supabase.rows("person_profiles")
        assert len(person_profiles) == 1
        assert person_profiles[0]["is_primary"] is True
        assert person_profiles[0]["name"] == "Jan Kowalski"

        referrals = fake_supabase.rows("referrals")
        assert len(referrals) == 1
        assert referrals[0]["referrer_user_id"] == REFERRER_ID
        assert referrals[0]["referrer_code"] == "ABC12345"
        assert referrals[0]["referred_email"] == "jan@example.com"
        assert referrals[0]["referred_name"] == "Jan Kowalski"
        assert referrals[0]["status"] == "pending"

    def test_second_call_is_a_no_op(self, fake_supabase, service, referrer, referred_user):
        service.process_signup(signup_request())
        service.process_signup(signup_request())

        assert len([p for p in fake_supabase.rows("profiles") if p["user_id"] == REFERRED_ID]) == 1
        assert len(fake_supabase.rows("referrals")) == 1
        assert len(fake_supabase.rows("patients")) == 1
        assert len(fake_supabase.rows("person_profiles")) == 1

    def test_unknown_account_is_404(self, fake_supabase, service):
        with pytest.raises(HTTPException) as exc_info:
            service.process_signup(signup_request())
        assert exc_info.value.status_code == 404
        assert fake_supabase.rows("profiles") == []

    def test_unknown_referral_code_creates_no_referral(self, fake_supabase, service, referrer, referred_user):
        service.process_signup(signup_request(referredBy="NOPE0000"))

        assert fake_supabase.rows("referrals") == []
        assert any(p["user_id"] == REFERRED_ID for p in fake_supabase.rows("profiles"))

    def test_without_referred_by_skips_lookup(self, fake_supabase, service, referred_user):
        service.process_signup(signup_request(referredBy=None))

        assert fake_supabase.rows("referrals") == []
        assert ("referrals", "insert") not in fake_supabase.calls

    def test_self_referral_ignored(self, fake_supabase, service, referred_user):
        service.process_signup(signup_request(referredBy="NEWCODE1"))

        assert fake_supabase.rows("referrals") == []

    def test_referral_write_failure_does_not_raise(self, fake_supabase, service, referrer, referred_user):
        fake_supabase.errors["referrals"] = APIError(
            {"message": "connection reset", "code": "08006", "hint": None, "details": None}
        )

        service.process_signup(signup_request())

        assert any(p["user_id"] == REFERRED_ID for p in fake_supabase.rows("profiles"))

    def test_existing_profile_keeps_its_code(self, fake_supabase, service, referred_user):
        fake_supabase.rows("profiles").append({"user_id": REFERRED_ID, "referral_code": "OLDCODE9"})

        stored = service.ensure_profile(signup_request(), {"user_metadata": {"referralCode": "OLDCODE9"}})

        assert stored == "OLDCODE9"
        assert len(fake_supabase.rows("profiles")) == 1

    def test_profile_without_code_gets_one(self, fake_supabase, service, referred_user):
        fake_supabase.rows("profiles").append({"user_id": REFERRED_ID, "referral_code": None})

        stored = service.ensure_profile(signup_request(), {"user_metadata": {"referralCode": "NEWCODE1"}})

        assert stored == "NEWCODE1"
        assert fake_supabase.rows("profiles")[0]["referral_code"] == "NEWCODE1"

    def test_presignup_interview_saved_once(self, fake_supabase, service, referred_user):
        request = signup_request(referredBy=None, interviewData={"goal": "energy"})

        service.process_signup(request)
        service.process_signup(request)

        interviews = fake_supabase.rows("nutrition_interviews")
        assert len(interviews) == 1
        assert interviews[0]["status"] == "sent"
        assert interviews[0]["content"] == {"goal": "energy"}
        assert interviews[0]["person_profile_id"] == fake_supabase.rows("person_profiles")[0]["id"]

    def test_emails_sent_when_enabled(self, fake_supabase, referred_user):
        email_service = MagicMock(enabled=True)
        service = ReferralService(fake_supabase, email_service=email_service)

        service.process_signup(signup_request(referredBy=None))

        email_service.send_new_registration_notice.assert_called_once_with(
            "Jan Kowalski", "jan@example.com", None
        )
        email_service.send_welcome_email.assert_called_once_with("jan@example.com", "Jan")

    def test_emails_skipped_when_disabled(self, fake_supabase, referred_user):
        email_service = MagicMock(enabled=False)
        service = ReferralService(fake_supabase, email_service=email_service)

        service.process_signup(signup_request(referredBy=None))

        email_service.send_welcome_email.assert_not_called()


class TestReferralCodeCollision:
    def test_taken_code_is_resampled(self, fake_supabase, service, referred_user):
        fake_supabase.rows("profiles").append({"user_id": OTHER_ID, "referral_code": "NEWCODE1"})

        with patch("avatar_backend.modules.referrals.service.generate_referral_code", return_value="FRESH001"):
            stored = service.ensure_profile(signup_request(), {"user_metadata": {"referralCode": "NEWCODE1"}})

        assert stored == "FRESH001"
        assert referred_user.user_metadata["referralCode"] == "FRESH001"

    def test_gives_up_after_max_attempts(self, fake_supabase, service, referred_user, monkeypatch):
        monkeypatch.setattr(settings, "referral_code_max_attempts", 2)
        fake_supabase.rows("profiles").append({"user_id": OTHER_ID, "referral_code": "NEWCODE1"})

        with patch("avatar_backend.modules.referrals.service.generate_referral_code", return_value="NEWCODE1"):
            with pytest.raises(RuntimeError):
                service.ensure_profile(signup_request())

    def test_exhausted_retries_do_not_block_signup(self, fake_supabase, service, referred_user, monkeypatch):
        monkeypatch.setattr(settings, "referral_code_max_attempts", 1)
        fake_supabase.rows("profiles").append({"user_id": OTHER_ID, "referral_code": "NEWCODE1"})

        with patch("avatar_backend.modules.referrals.service.generate_referral_code", return_value="NEWCODE1"):
            service.process_signup(signup_request(referredBy=None))

        assert [p["user_id"] for p in fake_supabase.rows("patients")] == [REFERRED_ID]


class TestRepairReferral:
    caller = {"id": REFERRER_ID, "email": "anna@example.com"}

    def test_links_account_that_used_callers_code(self, fake_supabase, service, referrer, referred_user):
        service.repair_referral(self.caller, "jan@example.com")

        referrals = fake_supabase.rows("referrals")
        assert len(referrals) == 1
        assert referrals[0]["referrer_user_id"] == REFERRER_ID
        assert referrals[0]["referrer_code"] == "ABC12345"
        assert referrals[0]["referred_user_id"] == REFERRED_ID
        assert referrals[0]["referred_email"] == "Jan@Example.com"
        assert referrals[0]["referred_name"] == "Jan Kowalski"
        assert referrals[0]["status"] == "pending"

    def test_email_match_is_case_insensitive(self, fake_supabase, service, referrer, referred_user):
        service.repair_referral(self.caller, "  JAN@EXAMPLE.COM ")

        assert len(fake_supabase.rows("referrals")) == 1

    def test_rejects_account_referred_by_someone_else(self, fake_supabase, service, referrer):
        fake_supabase.add_user(REFERRED_ID, "jan@example.com", referredBy="ZZZ99999")

        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "jan@example.com")

        assert exc_info.value.status_code == 400
        assert "did not sign up via your" in exc_info.value.detail
        assert fake_supabase.rows("referrals") == []

    def test_rejects_account_without_referred_by(self, fake_supabase, service, referrer):
        fake_supabase.add_user(REFERRED_ID, "jan@example.com")

        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "jan@example.com")

        assert exc_info.value.status_code == 400

    def test_rejects_existing_referral(self, fake_supabase, service, referrer, referred_user):
        service.process_signup(signup_request())

        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "jan@example.com")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Referral already exists"
        assert len(fake_supabase.rows("referrals")) == 1

    def test_linked_account_reported_as_existing_to_other_caller(self, fake_supabase, service, referrer, referred_user):
        service.repair_referral(self.caller, "jan@example.com")
        fake_supabase.add_user(OTHER_ID, "ewa@example.com", referralCode="EVE00000")
        fake_supabase.rows("profiles").append({"user_id": OTHER_ID, "referral_code": "EVE00000"})

        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral({"id": OTHER_ID, "email": "ewa@example.com"}, "jan@example.com")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Referral already exists"
        assert len(fake_supabase.rows("referrals")) == 1

    def test_unique_violation_on_insert_reported_as_existing(self, fake_supabase, service, referrer, referred_user):
        fake_supabase.rows("referrals").append({
            "referrer_user_id": OTHER_ID, "referrer_code": "XYZ00000",
            "referred_user_id": REFERRED_ID, "referred_email": "jan@example.com",
            "referred_name": "Jan Kowalski", "status": "pending",
        })

        with patch.object(service, "get_referral_for", return_value=None):
            with pytest.raises(HTTPException) as exc_info:
                service.repair_referral(self.caller, "jan@example.com")

        assert exc_info.value.detail == "Referral already exists"
        assert len(fake_supabase.rows("referrals")) == 1

    def test_caller_without_referral_code(self, fake_supabase, service, referred_user):
        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral({"id": OTHER_ID}, "jan@example.com")

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "You do not have a referral code"

    def test_missing_email(self, service, referrer):
        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "   ")

        assert exc_info.value.status_code == 400

    def test_unknown_email(self, service, referrer):
        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "ghost@example.com")

        assert exc_info.value.status_code == 404

    def test_user_listing_failure(self, fake_supabase, service, referrer):
        fake_supabase.auth.admin.list_error = Exception("auth service unavailable")

        with pytest.raises(HTTPException) as exc_info:
            service.repair_referral(self.caller, "jan@example.com")

        assert exc_info.value.status_code == 500

    def test_placeholder_name_without_metadata_names(self, fake_supabase, service, referrer):
        fake_supabase.add_user(REFERRED_ID, "jan@example.com", referredBy="ABC12345")

        service.repair_referral(self.caller, "jan@example.com")

        assert fake_supabase.rows("referrals")[0]["referred_name"] == "Użytkownik"


class TestLedger:
    def _seed(self, fake_supabase):
        for i, status in enumerate(["pending", "active", "pending"]):
            fake_supabase.rows("referrals").append({
                "id": f"ref-{i}",
                "referrer_user_id": REFERRER_ID,
                "referrer_code": "ABC12345",
                "referred_user_id": f"user-{i}",
                "referred_email": f"user{i}@example.com",
                "referred_name": f"User {i}",
                "status": status,
                "created_at": f"2024-01-1{i}T10:00:00+00:00",
            })

    def test_stats(self, fake_supabase, service):
        self._seed(fake_supabase)

        stats = service.get_referral_stats(REFERRER_ID)

        assert (stats.total, stats.pending, stats.active) == (3, 2, 1)

    def test_list_newest_first(self, fake_supabase, service):
        self._seed(fake_supabase)

        referrals = service.list_referrals(REFERRER_ID)

        assert [r.id for r in referrals] == ["ref-2", "ref-1", "ref-0"]
        assert service.list_referrals(OTHER_ID) == []

    def test_overview(self, fake_supabase, service, referrer):
        self._seed(fake_supabase)

        overview = service.get_overview(REFERRER_ID)

        assert overview.referral_code == "ABC12345"
        assert overview.referral_link == build_referral_link("ABC12345")
        assert overview.referral_link.endswith("/signup?ref=ABC12345")
        assert overview.stats.total == 3

    def test_activate(self, fake_supabase, service):
        self._seed(fake_supabase)

        referral = service.activate_referral("user-0")

        assert referral.status == "active"
        assert referral.activated_at is not None

    def test_activate_twice_keeps_first_timestamp(self, fake_supabase, service):
        self._seed(fake_supabase)

        first = service.activate_referral("user-0")
        second = service.activate_referral("user-0")

        assert second.activated_at == first.activated_at

    def test_activate_unknown(self, service):
        with pytest.raises(HTTPException) as exc_info:
            service.activate_referral("missing")
        assert exc_info.value.status_code == 404
