from fastapi import Request, HTTPException, Depends
from fastapi.responses import Response
from typing import Dict, Any
from backend.config import COOKIE_SECURE, ADMIN_TOKEN_TTL_SECONDS

COOKIE_NAME = "admin_access"

def set_session_cookie(response: Response, access_token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="Lax",
        max_age=ADMIN_TOKEN_TTL_SECONDS,
        path="/",
    )

def clear_session_cookie(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")

def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split(" ")
    if len(parts) == 2 and parts[0] == "Bearer":
        return parts[1].strip()
    return ""

def get_current_admin(request: Request) -> Dict[str, Any]:
    # Hybride: priorité au Bearer, fallback cookie
    token = bearer_token(request) or request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    # Délégué au service Auth
    from backend.auth.service import get_admin_from_token
    admin = get_admin_from_token(token)
    if not admin.get("username"):
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return admin

def require_admin(admin: Dict[str, Any] = Depends(get_current_admin)) -> Dict[str, Any]:
    if admin.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Accès interdit")
    return admin
