from fastapi import APIRouter, Depends
from avatar_backend.database.supabase_client import get_service_supabase
from avatar_backend.modules.referrals.schemas import (
    PostSignupRequest, RepairReferralRequest, SuccessResponse,
    ReferralResponse, ReferralOverview
)
from avatar_backend.modules.referrals.service import ReferralService
from avatar_backend.core.dependencies import get_current_user, require_admin
from supabase import Client
from typing import List, Dict

# Serverless-style endpoints called directly by the frontend
functions_router = APIRouter(prefix="/functions", tags=["functions"])

router = APIRouter(prefix="/referrals", tags=["referrals"])


def get_referral_service(supabase: Client = Depends(get_service_supabase)) -> ReferralService:
    return ReferralService(supabase)


@functions_router.post("/post-signup", response_model=SuccessResponse)
async def post_signup(
    signup_data: PostSignupRequest,
    service: ReferralService = Depends(get_referral_service)
):
    """Create profile/patient records for a new account and credit its referrer (best effort)"""
    service.process_signup(signup_data)
    return SuccessResponse()


@functions_router.post("/repair-referral", response_model=SuccessResponse)
async def repair_referral(
    repair_data: RepairReferralRequest,
    current_user: Dict = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Link an account that signed up with the caller's referral code"""
    service.repair_referral(current_user, repair_data.referred_email)
    return SuccessResponse()


@router.get("", response_model=List[ReferralResponse])
async def list_my_referrals(
    current_user: Dict = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Referrals credited to the current user"""
    return service.list_referrals(current_user["id"])


@router.get("/overview", response_model=ReferralOverview)
async def get_my_referral_overview(
    current_user: Dict = Depends(get_current_user),
    service: ReferralService = Depends(get_referral_service)
):
    """Current user's referral code, link and counters"""
    return service.get_overview(current_user["id"])


@router.post("/{referred_user_id}/activate", response_model=ReferralResponse)
async def activate_referral(
    referred_user_id: str,
    admin_user: Dict = Depends(require_admin),
    service: ReferralService = Depends(get_referral_service)
):
    """Mark a referral active (admin only)"""
    return service.activate_referral(referred_user_id)
