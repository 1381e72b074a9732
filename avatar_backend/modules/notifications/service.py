import logging
from fastapi import HTTPException
from pydantic import TypeAdapter, ValidationError
from supabase import Client
from typing import Any, Dict, List, Optional

from avatar_backend.modules.notifications.models import FEED_PAGE_SIZE, MARK_SCOPE_PAGE_SIZE
from avatar_backend.modules.notifications.schemas import (
    AdminEvent, AdminEventType, AdminUnreadCounters, FeedScope,
    MESSAGE_EVENT_TYPES, PatientUnreadCounter
)

logger = logging.getLogger(__name__)

_EVENT_ADAPTER = TypeAdapter(AdminEvent)


def parse_admin_event(row: Dict[str, Any]) -> AdminEvent:
    """Validate a feed row into its event variant; unknown event_type raises ValidationError"""
    return _EVENT_ADAPTER.validate_python(row)


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def normalize_by_patient(raw: Any) -> List[PatientUnreadCounter]:
    """Drop malformed rows, coerce counts to int (0 when not numeric)"""
    if not isinstance(raw, list):
        return []
    counters = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        patient_id = item.get("patient_id")
        if not isinstance(patient_id, str) or not patient_id:
            continue
        counters.append(PatientUnreadCounter(
            patient_id=patient_id,
            unread_messages=_to_int(item.get("unread_messages", 0)),
            unread_interviews=_to_int(item.get("unread_interviews", 0)),
        ))
    return counters


class AdminNotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_feed(
        self,
        scope: FeedScope = FeedScope.ALL,
        limit: int = FEED_PAGE_SIZE,
        offset: int = 0,
        patient_id: Optional[str] = None,
        event_types: Optional[List[AdminEventType]] = None
    ) -> List[AdminEvent]:
        """Page of admin events, newest first. Rows that match no event variant are skipped."""
        params: Dict[str, Any] = {"p_scope": scope.value, "p_limit": limit, "p_offset": offset}
        if patient_id:
            params["p_patient_id"] = patient_id
        if event_types:
            params["p_event_types"] = [t.value for t in event_types]
        try:
            result = self.supabase.rpc("get_admin_event_feed", params).execute()
        except Exception as e:
            logger.error(f"get_admin_event_feed failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to load admin events")

        events = []
        for row in result.data or []:
            try:
                events.append(parse_admin_event(row))
            except ValidationError as e:
                logger.warning(f"Skipping admin event {row.get('id')} with unexpected shape: {e}")
        return events

    def get_unread_counters(self) -> AdminUnreadCounters:
        try:
            result = self.supabase.rpc("get_admin_unread_counters", {}).execute()
        except Exception as e:
            logger.error(f"get_admin_unread_counters failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to load unread counters")
        rows = result.data if isinstance(result.data, list) else []
        row = rows[0] if rows else {}
        return AdminUnreadCounters(
            unread_all=_to_int(row.get("unread_all", 0)),
            unread_messages=_to_int(row.get("unread_messages", 0)),
            by_patient=normalize_by_patient(row.get("by_patient")),
        )

    def mark_events_read(self, event_ids: List[str]) -> int:
        """Returns how many distinct ids were sent to the database"""
        unique_ids = list(dict.fromkeys(i for i in event_ids if i))
        if not unique_ids:
            return 0
        try:
            self.supabase.rpc("mark_admin_events_read", {"p_event_ids": unique_ids}).execute()
        except Exception as e:
            logger.error(f"mark_admin_events_read failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to mark events read")
        return len(unique_ids)

    def collect_unread_event_ids(self, patient_id: str, event_types: List[AdminEventType]) -> List[str]:
        unread_ids: List[str] = []
        offset = 0
        while True:
            events = self.get_feed(
                scope=FeedScope.ALL,
                limit=MARK_SCOPE_PAGE_SIZE,
                offset=offset,
                patient_id=patient_id,
                event_types=event_types,
            )
            unread_ids.extend(event.id for event in events if not event.is_read)
            if len(events) < MARK_SCOPE_PAGE_SIZE:
                return unread_ids
            offset += MARK_SCOPE_PAGE_SIZE

    def mark_patient_messages_read(self, patient_id: str) -> int:
        return self.mark_events_read(self.collect_unread_event_ids(patient_id, MESSAGE_EVENT_TYPES))

    def mark_patient_interview_read(self, patient_id: str) -> int:
        return self.mark_events_read(
            self.collect_unread_event_ids(patient_id, [AdminEventType.INTERVIEW_SENT])
        )
