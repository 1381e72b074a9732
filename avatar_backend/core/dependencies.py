"""
Core dependencies for route protection
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from avatar_backend.database.supabase_client import get_service_supabase, create_user_client
from avatar_backend.modules.auth.service import AuthService
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401, not 403
security = HTTPBearer(auto_error=False)


def get_auth_service(supabase: Client = Depends(get_service_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from the Bearer token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization"
        )
    return auth_service.get_current_user(credentials.credentials)


def is_admin(user_id: str, supabase: Client) -> bool:
    """Check the user_roles table for an admin role"""
    try:
        result = supabase.table("user_roles")\
            .select("role")\
            .eq("user_id", user_id)\
            .eq("role", "admin")\
            .limit(1)\
            .execute()
        return bool(result.data)
    except Exception as e:
        logger.error(f"Error checking admin role for {user_id}: {e}")
        return False


def require_admin(
    user_data: dict = Depends(get_current_user),
    supabase: Client = Depends(get_service_supabase)
) -> dict:
    """Dependency that lets only admins through"""
    if not is_admin(user_data["id"], supabase):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Admin access required"
        )
    return user_data


def get_user_supabase(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> Client:
    """Per-request client acting as the caller (for RPCs that read auth.uid())"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization"
        )
    return create_user_client(credentials.credentials)
