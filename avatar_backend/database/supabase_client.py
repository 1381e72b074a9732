import logging
from supabase import create_client, Client
from avatar_backend.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    _anon_client: Client = None
    _service_client: Client = None

    @classmethod
    def get_anon_client(cls) -> Client:
        if cls._anon_client is None:
            cls._anon_client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._anon_client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS and can call the auth admin API.

        Falls back to the anon client when no service key is configured, in
        which case admin lookups fail and post-signup degrades to logging.
        """
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        if cls._service_client is None:
            logger.warning("Service role key missing, using anon Supabase client")
            return cls.get_anon_client()
        return cls._service_client


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()


def create_user_client(access_token: str) -> Client:
    """Fresh anon-key client that sends the user's JWT, so RLS and auth.uid() see that user"""
    client = create_client(settings.supabase_url, settings.supabase_key)
    client.postgrest.auth(access_token)
    return client
