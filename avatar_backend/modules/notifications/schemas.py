from pydantic import BaseModel, Field
from typing import Annotated, ClassVar, List, Literal, Optional, Union
from datetime import datetime
from enum import Enum


class AdminEventType(str, Enum):
    PATIENT_QUESTION = "patient_question"
    SUPPORT_TICKET = "support_ticket"
    INTERVIEW_SENT = "interview_sent"
    NEW_REGISTRATION = "new_registration"


class FeedScope(str, Enum):
    ALL = "all"
    MESSAGES = "messages"


class _AdminEventBase(BaseModel):
    id: str
    patient_id: Optional[str] = None
    person_profile_id: Optional[str] = None
    source_table: str
    source_id: str
    title: str
    preview: Optional[str] = None
    occurred_at: datetime
    created_at: datetime
    is_read: bool = False

    is_message: ClassVar[bool] = False


class PatientQuestionEvent(_AdminEventBase):
    event_type: Literal["patient_question"]
    is_message: ClassVar[bool] = True


class SupportTicketEvent(_AdminEventBase):
    event_type: Literal["support_ticket"]
    is_message: ClassVar[bool] = True


class InterviewSentEvent(_AdminEventBase):
    event_type: Literal["interview_sent"]


class NewRegistrationEvent(_AdminEventBase):
    event_type: Literal["new_registration"]


AdminEvent = Annotated[
    Union[PatientQuestionEvent, SupportTicketEvent, InterviewSentEvent, NewRegistrationEvent],
    Field(discriminator="event_type"),
]

MESSAGE_EVENT_TYPES = [
    AdminEventType.PATIENT_QUESTION,
    AdminEventType.SUPPORT_TICKET,
]


class AdminEventFeed(BaseModel):
    scope: FeedScope
    events: List[AdminEvent]


class PatientUnreadCounter(BaseModel):
    patient_id: str
    unread_messages: int = 0
    unread_interviews: int = 0


class AdminUnreadCounters(BaseModel):
    unread_all: int = 0
    unread_messages: int = 0
    by_patient: List[PatientUnreadCounter] = []


class MarkReadRequest(BaseModel):
    event_ids: List[str]


class MarkReadResponse(BaseModel):
    marked: int
