# Admin event feed
# Events are produced by database triggers into admin_events and read through
# RPCs; this module never touches the table directly.

"""
RPCs (security definer, admin only):
- get_admin_event_feed(p_scope, p_limit, p_offset, p_patient_id?, p_event_types?)
    -> rows of admin_events joined with the caller's read state (is_read)
- get_admin_unread_counters()
    -> single row {unread_all, unread_messages, by_patient: [{patient_id, unread_messages, unread_interviews}]}
- mark_admin_events_read(p_event_ids uuid[])

admin_events:
- id: uuid (primary key)
- event_type: text ('patient_question' | 'support_ticket' | 'interview_sent' | 'new_registration')
- patient_id: uuid (nullable)
- person_profile_id: uuid (nullable)
- source_table: text
- source_id: uuid
- title: text
- preview: text (nullable)
- occurred_at: timestamp
- created_at: timestamp
"""

FEED_PAGE_SIZE = 50
MARK_SCOPE_PAGE_SIZE = 200
