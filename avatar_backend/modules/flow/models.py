# Supabase tables read by the flow status: patients, person_profiles,
# nutrition_interviews, recommendations
# This file documents the expected database schema
# Flow status never writes to these tables

"""
Expected Supabase table structure:

patients:
- id: uuid (primary key)
- user_id: uuid (unique, references auth.users.id)
- subscription_status: text (nullable, free text e.g. "Aktywna", "active", "paid")

person_profiles (an account can manage several people):
- id: uuid (primary key)
- account_user_id: uuid (references auth.users.id)
- name: text
- is_primary: boolean
- created_at: timestamp (default: now())

nutrition_interviews:
- id: uuid (primary key)
- person_profile_id: uuid (references person_profiles.id)
- content: jsonb
- status: text ('draft' | 'sent')
- last_updated_at: timestamp
- last_updated_by: uuid (nullable)

recommendations:
- id: uuid (primary key)
- patient_id: uuid (references patients.id)
"""

ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"aktywna", "active", "paid"})

INTERVIEW_STATUS_NONE = "none"
INTERVIEW_STATUS_DRAFT = "draft"
INTERVIEW_STATUS_SENT = "sent"
