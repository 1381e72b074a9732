"""Random codes handed out to accounts.

Referral codes are short and typed by hand, so they stay upper-case
alphanumeric. One-time passwords for imported accounts use a wider alphabet.
"""
import secrets
import string

REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits

ACCOUNT_PASSWORD_LENGTH = 16
ACCOUNT_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%"


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """8 characters drawn uniformly from A-Z0-9; uniqueness is checked on insert"""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def generate_account_password(length: int = ACCOUNT_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(ACCOUNT_PASSWORD_ALPHABET) for _ in range(length))
