from fastapi import APIRouter, Depends
from avatar_backend.database.supabase_client import get_service_supabase
from avatar_backend.modules.flow.schemas import FlowStatusResponse, FlowRedirectResponse
from avatar_backend.modules.flow.service import FlowStatusService
from avatar_backend.core.dependencies import get_current_user
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/flow", tags=["flow"])


def get_flow_service(supabase: Client = Depends(get_service_supabase)) -> FlowStatusService:
    return FlowStatusService(supabase)


@router.get("/status", response_model=FlowStatusResponse)
async def get_flow_status(
    active_profile_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    service: FlowStatusService = Depends(get_flow_service)
):
    """Onboarding stage of the current user for the given (or default) person profile"""
    return service.get_flow_status(current_user["id"], active_profile_id)


@router.get("/redirect", response_model=FlowRedirectResponse)
async def get_flow_redirect(
    pathname: str,
    active_profile_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user),
    service: FlowStatusService = Depends(get_flow_service)
):
    """Where the frontend must navigate before rendering pathname (redirect_to is null to stay)"""
    return service.get_redirect(current_user["id"], pathname, active_profile_id)
