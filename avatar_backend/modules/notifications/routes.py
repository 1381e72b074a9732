from fastapi import APIRouter, Depends
from avatar_backend.modules.notifications.models import FEED_PAGE_SIZE
from avatar_backend.modules.notifications.schemas import (
    AdminEventFeed, AdminUnreadCounters, FeedScope, MarkReadRequest, MarkReadResponse
)
from avatar_backend.modules.notifications.service import AdminNotificationService
from avatar_backend.core.dependencies import require_admin, get_user_supabase
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/admin/notifications", tags=["admin-notifications"])


def get_notification_service(supabase: Client = Depends(get_user_supabase)) -> AdminNotificationService:
    return AdminNotificationService(supabase)


@router.get("", response_model=AdminEventFeed)
async def get_event_feed(
    scope: FeedScope = FeedScope.ALL,
    limit: int = FEED_PAGE_SIZE,
    offset: int = 0,
    admin_user: Dict = Depends(require_admin),
    service: AdminNotificationService = Depends(get_notification_service)
):
    """Admin event feed; scope=messages limits it to patient questions and support tickets"""
    return AdminEventFeed(scope=scope, events=service.get_feed(scope=scope, limit=limit, offset=offset))


@router.get("/counters", response_model=AdminUnreadCounters)
async def get_unread_counters(
    admin_user: Dict = Depends(require_admin),
    service: AdminNotificationService = Depends(get_notification_service)
):
    return service.get_unread_counters()


@router.post("/read", response_model=MarkReadResponse)
async def mark_events_read(
    request: MarkReadRequest,
    admin_user: Dict = Depends(require_admin),
    service: AdminNotificationService = Depends(get_notification_service)
):
    return MarkReadResponse(marked=service.mark_events_read(request.event_ids))


@router.post("/patients/{patient_id}/messages/read", response_model=MarkReadResponse)
async def mark_patient_messages_read(
    patient_id: str,
    admin_user: Dict = Depends(require_admin),
    service: AdminNotificationService = Depends(get_notification_service)
):
    """Mark every unread question/ticket of a patient read"""
    return MarkReadResponse(marked=service.mark_patient_messages_read(patient_id))


@router.post("/patients/{patient_id}/interview/read", response_model=MarkReadResponse)
async def mark_patient_interview_read(
    patient_id: str,
    admin_user: Dict = Depends(require_admin),
    service: AdminNotificationService = Depends(get_notification_service)
):
    return MarkReadResponse(marked=service.mark_patient_interview_read(patient_id))
