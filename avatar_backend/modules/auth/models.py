# Supabase Auth
# Accounts live in Supabase's auth.users table; no custom tables are required.
# The signup form stores everything the referral flow needs in user_metadata.

"""
user_metadata keys written at signup:
- firstName: text
- lastName: text
- phone: text
- referralCode: text - the account's own 8-character referral code
- referredBy: text (nullable) - referral code the account signed up with
- photoOption: "upload" | "later"

Supabase Auth provides (service role client):
- auth.get_user(jwt) - Resolve the current user from a JWT token
- auth.admin.get_user_by_id() - Look up an account by id
- auth.admin.list_users() - Paginated listing of all accounts
- auth.admin.update_user_by_id() - Rewrite user_metadata
"""

META_FIRST_NAME = "firstName"
META_LAST_NAME = "lastName"
META_REFERRAL_CODE = "referralCode"
META_REFERRED_BY = "referredBy"
