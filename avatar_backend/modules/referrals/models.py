# Supabase tables: profiles, referrals
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles (one row per auth.users account):
- id: uuid (primary key)
- user_id: uuid (unique, references auth.users.id)
- referral_code: text (unique, 8 chars A-Z0-9)
- first_name: text (nullable)
- last_name: text (nullable)
- phone: text (nullable)
- avatar_url: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

referrals (one attribution edge per referred account):
- id: uuid (primary key)
- referrer_user_id: uuid (references auth.users.id, not null)
- referrer_code: text (not null) - code the referred account signed up with
- referred_user_id: uuid (unique, references auth.users.id, not null)
- referred_email: text (not null)
- referred_name: text (not null)
- status: text ('pending' | 'active', default 'pending')
- created_at: timestamp (default: now())
- activated_at: timestamp (nullable)

The unique constraint on referrals.referred_user_id is what keeps attribution
single-shot: writers insert and treat the unique violation as "already
attributed" instead of checking first.
"""

UNIQUE_VIOLATION = "23505"

REFERRAL_STATUS_PENDING = "pending"
REFERRAL_STATUS_ACTIVE = "active"

DEFAULT_REFERRED_NAME = "Użytkownik"
