from pydantic import BaseModel
from typing import Optional

from avatar_backend.modules.flow.state import FlowState


class FlowStatusResponse(BaseModel):
    is_flow_resolved: bool
    flow_state: FlowState
    active_profile_id: Optional[str] = None
    has_paid_plan: bool = False
    has_interview: bool = False
    has_interview_draft: bool = False
    interview_status: str = "none"  # none | draft | sent
    has_results: bool = False


class FlowRedirectResponse(BaseModel):
    pathname: str
    flow_state: FlowState
    is_flow_resolved: bool
    redirect_to: Optional[str] = None
