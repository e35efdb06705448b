from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from supabase import Client

from core.config import settings
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from models.enums import UserRole


bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# Current User Model (identity trusted by the request engine)
# ============================================================
class CurrentUser(BaseModel):
    id: str                         # Supabase Auth UID == users.id
    email: Optional[str] = None
    role: str = UserRole.client.value
    full_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


# ============================================================
# Session credential: cookie first, Bearer header as fallback
# ============================================================
def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and credentials:
        token = credentials.credentials
    return token


# ============================================================
# AUTH DECODING (Supabase: validates JWT + reads metadata)
# ============================================================
def get_current_user(token: Optional[str] = Depends(get_session_token)) -> CurrentUser:

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise unauthorized

    client: Client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Internal server error")

    # ---------------------------------------------------------
    # Validate JWT via Supabase GoTrue
    # ---------------------------------------------------------
    try:
        auth_resp = client.auth.get_user(token)
    except Exception as e:
        logger.info(f"Session validation failed: {e}")
        raise unauthorized

    if not auth_resp or not auth_resp.user:
        raise unauthorized

    auth_user = auth_resp.user
    metadata = auth_user.user_metadata or {}

    # Role only from app_metadata: user_metadata is writable by the user
    app_metadata = getattr(auth_user, "app_metadata", None) or {}
    role = app_metadata.get("role", UserRole.client.value)
    if role not in UserRole.list():
        role = UserRole.client.value

    return CurrentUser(
        id=auth_user.id,
        email=auth_user.email,
        role=role,
        full_name=metadata.get("full_name"),
    )


# ============================================================
# ROLE CHECKER
# ============================================================
def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return current_user
