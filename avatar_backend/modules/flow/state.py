"""
Onboarding flow state and the route guard built on it.

Both functions are pure: the caller supplies the flow state, computed from
the account's subscription and interview records, and the path being opened.
"""
from enum import Enum
from typing import Optional

DASHBOARD_PATH = "/dashboard"
INTERVIEW_PATH = "/interview"
PAYMENT_PATH = "/payment"


class FlowState(str, Enum):
    NO_PLAN = "NO_PLAN"
    PLAN_NO_INTERVIEW = "PLAN_NO_INTERVIEW"
    READY = "READY"


def derive_flow_state(has_paid_plan: bool, has_interview: bool) -> FlowState:
    """Plan check dominates the interview check"""
    if not has_paid_plan:
        return FlowState.NO_PLAN
    if not has_interview:
        return FlowState.PLAN_NO_INTERVIEW
    return FlowState.READY


def normalize_path(pathname: str) -> str:
    """Strip query string and trailing slash; empty becomes '/'"""
    if not pathname:
        return "/"
    base = pathname.split("?", 1)[0] or "/"
    if len(base) > 1 and base.endswith("/"):
        base = base[:-1]
    return base


def is_payment_path(path: str) -> bool:
    return path == PAYMENT_PATH or path.startswith(PAYMENT_PATH + "/")


def is_interview_path(path: str) -> bool:
    return (
        path == INTERVIEW_PATH
        or path.startswith(INTERVIEW_PATH + "/")
        or path == DASHBOARD_PATH + INTERVIEW_PATH
    )


def is_dashboard_path(path: str) -> bool:
    return path == DASHBOARD_PATH or path.startswith(DASHBOARD_PATH + "/")


def resolve_flow_redirect_target(pathname: str, flow_state: FlowState) -> Optional[str]:
    """Path to force-navigate to, or None to stay.

    NO_PLAN may only see the dashboard root and payment pages.
    PLAN_NO_INTERVIEW is held on the interview.
    READY can go anywhere except back to payment.
    Paths outside the three families are never redirected.
    """
    path = normalize_path(pathname)

    if flow_state == FlowState.NO_PLAN:
        if path == DASHBOARD_PATH or is_payment_path(path):
            return None
        if is_dashboard_path(path) or is_interview_path(path):
            return DASHBOARD_PATH
        return None

    if flow_state == FlowState.PLAN_NO_INTERVIEW:
        if is_interview_path(path):
            return None
        if is_dashboard_path(path) or is_payment_path(path):
            return INTERVIEW_PATH
        return None

    if is_payment_path(path):
        return DASHBOARD_PATH
    return None


def guard_redirect(pathname: str, flow_state: FlowState, is_resolved: bool = True) -> Optional[str]:
    """Route guard entry point; stays put until the flow status has loaded"""
    if not is_resolved:
        return None
    return resolve_flow_redirect_target(pathname, flow_state)
