"""
Caller identity and admin authentication

Callers are authenticated upstream; the gateway forwards the user handle in
a request header (settings.USER_HEADER).
"""

from typing import Optional

from fastapi import HTTPException, Depends, Header, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import settings
from app.services.locale_overlay import language_of

security = HTTPBearer()

def verify_admin_token(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify admin authentication token"""
    if credentials.credentials != settings.ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    return credentials.credentials

def get_current_user(request: Request) -> str:
    """Extract the authenticated user handle"""
    user_handle = request.headers.get(settings.USER_HEADER, "").strip()
    if not user_handle:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {settings.USER_HEADER} header"
        )
    return user_handle

def get_locale(accept_language: Optional[str] = Header(None)) -> Optional[str]:
    """Primary language from Accept-Language, if any"""
    return language_of(accept_language)
