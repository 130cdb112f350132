from fastapi import APIRouter, HTTPException, Depends, Response
from typing import Dict, Any

from backend.utils.security import require_admin, set_session_cookie, clear_session_cookie
from .models import AdminLoginRequest
from .service import admin_login as svc_admin_login

def optional_rate_limit(times: int, seconds: int):
    from backend.utils.rate_limit import optional_rate_limit as _rl
    return _rl(times, seconds)

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

@api_router.post("/admin/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_admin_login(req: AdminLoginRequest, response: Response):
    """Connexion back-office (API JSON).
    - Rate limit: 5 requêtes par 60 secondes.
    - Vérifie identifiant + mot de passe (bcrypt) via le service.
    - Pose aussi le cookie HTTPOnly (admin_access) pour un usage navigateur.
    - Retourne {token, access_token, token_type, success}.
    """
    result = svc_admin_login(req.username, req.password)
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.error or "Invalid credentials")
    set_session_cookie(response, result.token)
    return {"success": True, "token": result.token, "access_token": result.token, "token_type": "bearer"}

@api_router.get("/admin/me")
def api_admin_me(admin: Dict[str, Any] = Depends(require_admin)):
    return {"admin": admin}

@api_router.post("/admin/logout")
def api_admin_logout(response: Response):
    clear_session_cookie(response)
    return {"success": True}
