import hashlib
import logging
import time
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# token hash -> (user dict, expiry); spares the auth API when the dashboard fires parallel requests
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

USERS_PAGE_SIZE = 1000


def _user_to_dict(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
        "created_at": user.created_at,
    }


def _cached_user(cache_key: str, now: float) -> Optional[Dict[str, Any]]:
    entry = _AUTH_USER_CACHE.get(cache_key)
    if entry is None:
        return None
    user_data, expiry = entry
    if now >= expiry:
        _AUTH_USER_CACHE.pop(cache_key, None)
        return None
    return user_data


def _remember_user(cache_key: str, user_data: Dict[str, Any], now: float) -> None:
    if len(_AUTH_USER_CACHE) >= _AUTH_CACHE_MAX_SIZE:
        for key in [k for k, (_, expiry) in _AUTH_USER_CACHE.items() if expiry <= now]:
            del _AUTH_USER_CACHE[key]
    if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
        _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to the account it belongs to; any failure is a 401"""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        user_data = _cached_user(cache_key, now)
        if user_data is not None:
            return user_data

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.info(f"Token rejected by Supabase Auth: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user_data = _user_to_dict(user_response.user)
        _remember_user(cache_key, user_data, now)
        return user_data

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Look up an account by id (requires service role key). Returns None if it does not exist."""
        try:
            response = self.supabase.auth.admin.get_user_by_id(user_id)
        except Exception as e:
            logger.warning(f"Auth lookup failed for user {user_id}: {e}")
            return None
        if not response or not response.user:
            return None
        return _user_to_dict(response.user)

    def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Case-insensitive exact email match over all accounts.

        Walks the admin listing page by page. Listing errors propagate to the
        caller, a missing account returns None.
        """
        wanted = email.strip().lower()
        page = 1
        while True:
            users = self.supabase.auth.admin.list_users(page=page, per_page=USERS_PAGE_SIZE)
            for user in users:
                if user.email and user.email.lower() == wanted:
                    return _user_to_dict(user)
            if len(users) < USERS_PAGE_SIZE:
                return None
            page += 1

    def update_user_metadata(self, user_id: str, metadata: Dict[str, Any]) -> bool:
        """Merge keys into the account's user_metadata"""
        try:
            response = self.supabase.auth.admin.update_user_by_id(
                user_id,
                {"user_metadata": metadata}
            )
            return bool(response and response.user)
        except Exception as e:
            logger.error(f"Failed to update metadata for user {user_id}: {e}")
            return False
