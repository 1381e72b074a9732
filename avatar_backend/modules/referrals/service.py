import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import HTTPException
from postgrest.exceptions import APIError
from supabase import Client

from avatar_backend.config import settings
from avatar_backend.modules.auth.models import (
    META_FIRST_NAME,
    META_LAST_NAME,
    META_REFERRAL_CODE,
    META_REFERRED_BY,
)
from avatar_backend.modules.auth.service import AuthService
from avatar_backend.modules.email.service import EmailService
from avatar_backend.modules.referrals.codes import generate_referral_code
from avatar_backend.modules.referrals.models import (
    DEFAULT_REFERRED_NAME,
    REFERRAL_STATUS_ACTIVE,
    REFERRAL_STATUS_PENDING,
    UNIQUE_VIOLATION,
)
from avatar_backend.modules.referrals.schemas import (
    PostSignupRequest,
    ReferralOverview,
    ReferralResponse,
    ReferralStats,
)

logger = logging.getLogger(__name__)


def is_unique_violation(error: Exception) -> bool:
    return isinstance(error, APIError) and error.code == UNIQUE_VIOLATION


def build_referral_link(referral_code: str) -> str:
    return f"{settings.app_url.rstrip('/')}/signup?ref={referral_code}"


def _display_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()


class ReferralService:
    def __init__(
        self,
        supabase: Client,
        auth_service: Optional[AuthService] = None,
        email_service: Optional[EmailService] = None,
    ):
        self.supabase = supabase
        self.auth = auth_service or AuthService(supabase)
        self.email = email_service or EmailService()

    # ledger

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("user_id", user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def get_profile_by_code(self, referral_code: str) -> Optional[Dict[str, Any]]:
        """Owner of a referral code, or None"""
        result = self.supabase.table("profiles")\
            .select("user_id, referral_code")\
            .eq("referral_code", referral_code)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_referral_for(self, referred_user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("referrals")\
            .select("*")\
            .eq("referred_user_id", referred_user_id)\
            .maybe_single()\
            .execute()
        return result.data if result else None

    def create_referral(
        self,
        referrer_user_id: str,
        referrer_code: str,
        referred_user_id: str,
        referred_email: str,
        referred_name: str,
    ) -> bool:
        """Insert a pending referral. Returns False when the referred account is already attributed."""
        try:
            self.supabase.table("referrals").insert({
                "referrer_user_id": referrer_user_id,
                "referrer_code": referrer_code,
                "referred_user_id": referred_user_id,
                "referred_email": referred_email,
                "referred_name": referred_name,
                "status": REFERRAL_STATUS_PENDING,
            }).execute()
            return True
        except APIError as e:
            if is_unique_violation(e):
                return False
            raise

    def list_referrals(self, referrer_user_id: str) -> List[ReferralResponse]:
        """Referrals credited to a referrer, newest first"""
        try:
            result = self.supabase.table("referrals")\
                .select("*")\
                .eq("referrer_user_id", referrer_user_id)\
                .order("created_at", desc=True)\
                .execute()
            return [ReferralResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_referral_stats(self, referrer_user_id: str) -> ReferralStats:
        try:
            result = self.supabase.table("referrals")\
                .select("status")\
                .eq("referrer_user_id", referrer_user_id)\
                .execute()
            statuses = [row.get("status") for row in result.data or []]
            return ReferralStats(
                total=len(statuses),
                pending=statuses.count(REFERRAL_STATUS_PENDING),
                active=statuses.count(REFERRAL_STATUS_ACTIVE),
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_overview(self, user_id: str) -> ReferralOverview:
        """The caller's own code, shareable link and counters"""
        try:
            profile = self.get_profile(user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        code = profile.get("referral_code") if profile else None
        return ReferralOverview(
            referral_code=code,
            referral_link=build_referral_link(code) if code else None,
            stats=self.get_referral_stats(user_id),
        )

    def activate_referral(self, referred_user_id: str) -> ReferralResponse:
        """Move a referral from pending to active. Activating twice is a no-op."""
        try:
            referral = self.get_referral_for(referred_user_id)
            if not referral:
                raise HTTPException(status_code=404, detail="Referral not found")
            if referral.get("status") == REFERRAL_STATUS_ACTIVE:
                return ReferralResponse(**referral)

            result = self.supabase.table("referrals")\
                .update({
                    "status": REFERRAL_STATUS_ACTIVE,
                    "activated_at": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("referred_user_id", referred_user_id)\
                .eq("status", REFERRAL_STATUS_PENDING)\
                .execute()
            if result.data:
                logger.info(f"Referral for {referred_user_id} activated")
                return ReferralResponse(**result.data[0])

            # Activated concurrently between the read and the update
            return ReferralResponse(**self.get_referral_for(referred_user_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # post-signup attribution, best effort

    def process_signup(self, data: PostSignupRequest) -> None:
        """Create the records a fresh account needs and credit its referrer.

        Only a missing account is reported to the caller. Every other step
        logs its failure and lets the remaining steps run.
        """
        logger.info(f"[post-signup] Processing signup for user {data.user_id} ({data.email}), referredBy={data.referred_by}")

        user = self.auth.get_user_by_id(data.user_id)
        if user is None:
            logger.error(f"[post-signup] User {data.user_id} not found")
            raise HTTPException(status_code=404, detail="User not found")

        self._best_effort("profile", self.ensure_profile, data, user)
        self._best_effort("patient", self.ensure_patient, data.user_id)
        person_profile_id = self._best_effort("person profile", self.ensure_primary_person_profile, data)
        if data.interview_data and person_profile_id:
            self._best_effort("interview", self.save_presignup_interview, person_profile_id, data)
        if data.referred_by:
            self._best_effort("referral", self.attribute_referral, data)
        self._send_signup_emails(data)

    def _best_effort(self, step: str, func: Callable, *args) -> Any:
        try:
            return func(*args)
        except Exception as e:
            logger.error(f"[post-signup] {step} step failed: {e}")
            return None

    def ensure_profile(self, data: PostSignupRequest, user: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Insert the profile if missing and return its stored referral code.

        A unique violation here can only come from referral_code (user_id
        conflicts are ignored), so the code is resampled and the write retried.
        """
        code = data.referral_code or generate_referral_code()
        attempts = max(1, settings.referral_code_max_attempts)
        profile = None
        for attempt in range(1, attempts + 1):
            try:
                profile = self._write_profile(data, code)
                break
            except APIError as e:
                if not is_unique_violation(e):
                    raise
                logger.warning(f"[post-signup] Referral code {code} taken (attempt {attempt}/{attempts})")
                code = generate_referral_code()
        else:
            raise RuntimeError(f"No unique referral code after {attempts} attempts")

        stored_code = profile.get("referral_code") if profile else None
        metadata_code = ((user or {}).get("user_metadata") or {}).get(META_REFERRAL_CODE)
        if stored_code and stored_code != metadata_code:
            logger.info(f"[post-signup] Syncing referralCode metadata for {data.user_id} to {stored_code}")
            self.auth.update_user_metadata(data.user_id, {META_REFERRAL_CODE: stored_code})
        return stored_code

    def _write_profile(self, data: PostSignupRequest, code: str) -> Optional[Dict[str, Any]]:
        self.supabase.table("profiles").upsert(
            {
                "user_id": data.user_id,
                "first_name": (data.first_name or "").strip() or None,
                "last_name": (data.last_name or "").strip() or None,
                "phone": (data.phone or "").strip() or None,
                "referral_code": code,
                "avatar_url": None,
            },
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()

        profile = self.get_profile(data.user_id)
        if profile is not None and not profile.get("referral_code"):
            # Row created elsewhere without a code
            self.supabase.table("profiles")\
                .update({"referral_code": code})\
                .eq("user_id", data.user_id)\
                .execute()
            profile["referral_code"] = code
        return profile

    def ensure_patient(self, user_id: str) -> None:
        """The admin patient list reads public.patients, so every account gets a row"""
        self.supabase.table("patients").upsert(
            {"user_id": user_id},
            on_conflict="user_id",
            ignore_duplicates=True,
        ).execute()

    def ensure_primary_person_profile(self, data: PostSignupRequest) -> Optional[str]:
        existing = self.supabase.table("person_profiles")\
            .select("id")\
            .eq("account_user_id", data.user_id)\
            .order("is_primary", desc=True)\
            .order("created_at")\
            .limit(1)\
            .execute()
        if existing.data:
            return existing.data[0]["id"]

        result = self.supabase.table("person_profiles").insert({
            "account_user_id": data.user_id,
            "name": data.full_name or data.email,
            "is_primary": True,
        }).execute()
        if not result.data:
            return None
        logger.info(f"[post-signup] Primary person profile created: {result.data[0]['id']}")
        return result.data[0]["id"]

    def save_presignup_interview(self, person_profile_id: str, data: PostSignupRequest) -> bool:
        existing = self.supabase.table("nutrition_interviews")\
            .select("id")\
            .eq("person_profile_id", person_profile_id)\
            .limit(1)\
            .execute()
        if existing.data:
            return False
        self.supabase.table("nutrition_interviews").insert({
            "person_profile_id": person_profile_id,
            "content": data.interview_data,
            "status": "sent",
            "last_updated_by": data.user_id,
        }).execute()
        logger.info(f"[post-signup] Pre-signup interview saved for {person_profile_id}")
        return True

    def attribute_referral(self, data: PostSignupRequest) -> bool:
        """Credit the owner of data.referred_by. Returns True only when a new referral row was written."""
        referrer = self.get_profile_by_code(data.referred_by)
        if referrer is None:
            logger.info(f"[post-signup] Referrer not found for code {data.referred_by}")
            return False
        if referrer["user_id"] == data.user_id:
            logger.warning(f"[post-signup] Ignoring self-referral for {data.user_id}")
            return False

        created = self.create_referral(
            referrer_user_id=referrer["user_id"],
            referrer_code=data.referred_by,
            referred_user_id=data.user_id,
            referred_email=data.email,
            referred_name=data.full_name,
        )
        if created:
            logger.info(f"[post-signup] Referral {referrer['user_id']} -> {data.user_id} created")
        else:
            logger.info(f"[post-signup] Referral for {data.user_id} already exists, skipping")
        return created

    def _send_signup_emails(self, data: PostSignupRequest) -> None:
        if not self.email.enabled:
            logger.info("[post-signup] Resend API key not configured, skipping email notifications")
            return
        self.email.send_new_registration_notice(data.full_name, data.email, data.referred_by)
        self.email.send_welcome_email(data.email, data.first_name)

    # referral repair

    def repair_referral(self, caller: Dict[str, Any], referred_email: Optional[str]) -> None:
        """Link an account that signed up with the caller's code but was never attributed"""
        caller_id = caller["id"]
        try:
            caller_profile = self.get_profile(caller_id)
        except Exception as e:
            logger.error(f"[repair-referral] Error reading profile of {caller_id}: {e}")
            caller_profile = None
        caller_code = caller_profile.get("referral_code") if caller_profile else None
        if not caller_code:
            raise HTTPException(status_code=400, detail="You do not have a referral code")

        email = (referred_email or "").strip()
        if not email:
            raise HTTPException(status_code=400, detail="Referred email is required")

        logger.info(f"[repair-referral] Caller {caller_id} ({caller_code}) looking for {email}")
        try:
            referred_user = self.auth.find_user_by_email(email)
        except Exception as e:
            logger.error(f"[repair-referral] Error listing users: {e}")
            raise HTTPException(status_code=500, detail="Error searching for user")
        if referred_user is None:
            raise HTTPException(status_code=404, detail="User not found")

        # An attributed account is reported as such whoever asks
        try:
            existing = self.get_referral_for(referred_user["id"])
        except Exception as e:
            logger.error(f"[repair-referral] Error checking existing referral: {e}")
            raise HTTPException(status_code=500, detail="Failed to create referral")
        if existing:
            raise HTTPException(status_code=400, detail="Referral already exists")

        metadata = referred_user.get("user_metadata") or {}
        if metadata.get(META_REFERRED_BY) != caller_code:
            logger.info(f"[repair-referral] referredBy mismatch: {metadata.get(META_REFERRED_BY)} vs {caller_code}")
            raise HTTPException(
                status_code=400,
                detail="This person did not sign up via your referral link"
            )

        try:
            created = self.create_referral(
                referrer_user_id=caller_id,
                referrer_code=caller_code,
                referred_user_id=referred_user["id"],
                referred_email=referred_user.get("email") or email,
                referred_name=_display_name(metadata.get(META_FIRST_NAME), metadata.get(META_LAST_NAME)) or DEFAULT_REFERRED_NAME,
            )
        except Exception as e:
            logger.error(f"[repair-referral] Error creating referral: {e}")
            raise HTTPException(status_code=500, detail="Failed to create referral")
        if not created:
            raise HTTPException(status_code=400, detail="Referral already exists")

        logger.info(f"[repair-referral] Referral {caller_id} -> {referred_user['id']} created")
