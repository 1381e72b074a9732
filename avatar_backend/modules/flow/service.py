import logging
from supabase import Client
from typing import Any, Dict, List, Optional

from avatar_backend.modules.flow.models import (
    ACTIVE_SUBSCRIPTION_STATUSES,
    INTERVIEW_STATUS_DRAFT,
    INTERVIEW_STATUS_NONE,
    INTERVIEW_STATUS_SENT,
)
from avatar_backend.modules.flow.schemas import FlowStatusResponse, FlowRedirectResponse
from avatar_backend.modules.flow.state import derive_flow_state, guard_redirect

logger = logging.getLogger(__name__)


def is_active_subscription(subscription_status: Optional[str]) -> bool:
    if not subscription_status:
        return False
    return subscription_status.strip().lower() in ACTIVE_SUBSCRIPTION_STATUSES


def select_active_profile(profiles: List[Dict[str, Any]], requested_id: Optional[str]) -> Optional[Dict[str, Any]]:
    """Requested profile if it belongs to the account, else the primary one, else the oldest"""
    if requested_id:
        for profile in profiles:
            if profile.get("id") == requested_id:
                return profile
    for profile in profiles:
        if profile.get("is_primary"):
            return profile
    return profiles[0] if profiles else None


class FlowStatusService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_flow_status(self, user_id: str, active_profile_id: Optional[str] = None) -> FlowStatusResponse:
        """Read subscription, person profiles and interviews and derive where the user is in onboarding.

        Read errors are logged; the affected flag falls back to False and the
        status is marked unresolved so the route guard holds off.
        """
        resolved = True

        patient = None
        try:
            result = self.supabase.table("patients")\
                .select("id, subscription_status")\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
            patient = result.data if result else None
        except Exception as e:
            logger.error(f"patients read error for {user_id}: {e}")
            resolved = False

        profiles: List[Dict[str, Any]] = []
        try:
            result = self.supabase.table("person_profiles")\
                .select("id, is_primary")\
                .eq("account_user_id", user_id)\
                .order("created_at")\
                .execute()
            profiles = result.data or []
        except Exception as e:
            logger.error(f"person_profiles read error for {user_id}: {e}")
            resolved = False

        active_profile = select_active_profile(profiles, active_profile_id)
        selected_profile_id = active_profile["id"] if active_profile else None

        interview_status = INTERVIEW_STATUS_NONE
        if selected_profile_id:
            try:
                interview_status = self._latest_interview_status(selected_profile_id)
            except Exception as e:
                logger.error(f"nutrition_interviews read error for {selected_profile_id}: {e}")
                resolved = False

        has_results = False
        if patient and patient.get("id"):
            try:
                result = self.supabase.table("recommendations")\
                    .select("id", count="exact", head=True)\
                    .eq("patient_id", patient["id"])\
                    .execute()
                has_results = (result.count or 0) > 0
            except Exception as e:
                logger.error(f"recommendations read error for {patient['id']}: {e}")

        has_paid_plan = is_active_subscription(patient.get("subscription_status") if patient else None)
        has_interview = interview_status == INTERVIEW_STATUS_SENT

        return FlowStatusResponse(
            is_flow_resolved=resolved,
            flow_state=derive_flow_state(has_paid_plan, has_interview),
            active_profile_id=selected_profile_id,
            has_paid_plan=has_paid_plan,
            has_interview=has_interview,
            has_interview_draft=interview_status == INTERVIEW_STATUS_DRAFT,
            interview_status=interview_status,
            has_results=has_results,
        )

    def _latest_interview_status(self, person_profile_id: str) -> str:
        result = self.supabase.table("nutrition_interviews")\
            .select("status, last_updated_at")\
            .eq("person_profile_id", person_profile_id)\
            .order("last_updated_at", desc=True)\
            .limit(1)\
            .execute()
        if not result.data:
            return INTERVIEW_STATUS_NONE
        status = result.data[0].get("status")
        if status in (INTERVIEW_STATUS_SENT, INTERVIEW_STATUS_DRAFT):
            return status
        return INTERVIEW_STATUS_NONE

    def get_redirect(self, user_id: str, pathname: str, active_profile_id: Optional[str] = None) -> FlowRedirectResponse:
        status = self.get_flow_status(user_id, active_profile_id)
        return FlowRedirectResponse(
            pathname=pathname,
            flow_state=status.flow_state,
            is_flow_resolved=status.is_flow_resolved,
            redirect_to=guard_redirect(pathname, status.flow_state, status.is_flow_resolved),
        )
