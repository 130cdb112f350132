"""
Authentification du back-office.
- Identifiant + hash bcrypt du mot de passe lus dans l'environnement (ADMIN_USERNAME / ADMIN_PASSWORD_HASH)
- Jeton Bearer sans état: JWT HS256 (PyJWT), expiration 24h
"""
from typing import Optional, Dict, Any
import hmac
import logging
import time

import bcrypt
import jwt

from backend import config
from backend.auth.models import AuthResponse, handle_exception

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Génère la valeur à placer dans ADMIN_PASSWORD_HASH."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # hash mal formé dans l'environnement
        logger.error("ADMIN_PASSWORD_HASH invalide (format bcrypt attendu)")
        return False


def create_admin_token(username: str, now: Optional[float] = None) -> str:
    issued = int(now if now is not None else time.time())
    payload = {"sub": username, "role": ADMIN_ROLE, "iat": issued, "exp": issued + config.ADMIN_TOKEN_TTL_SECONDS}
    return jwt.encode(payload, config.ADMIN_TOKEN_SECRET, algorithm=TOKEN_ALGORITHM)


def verify_admin_token(token: str) -> Optional[Dict[str, Any]]:
    """Retourne le payload si signature, rôle et expiration sont valides; sinon None."""
    if not token or not config.ADMIN_TOKEN_SECRET:
        return None
    try:
        payload = jwt.decode(
            token,
            config.ADMIN_TOKEN_SECRET,
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.info("admin token refused: %s", e)
        return None
    if payload.get("role") != ADMIN_ROLE:
        return None
    return payload


# --- Cas d'usage Auth exposés ---

def admin_login(username: str, password: str) -> AuthResponse:
    """Connexion back-office:
    - 500 si les identifiants admin ne sont pas configurés
    - 401 si identifiant ou mot de passe invalide (comparaison en temps constant)
    - Sinon jeton Bearer signé
    """
    try:
        if not config.ADMIN_USERNAME or not config.ADMIN_PASSWORD_HASH or not config.ADMIN_TOKEN_SECRET:
            return AuthResponse(False, error="Admin credentials not configured", status_code=500)
        username_ok = hmac.compare_digest((username or "").encode("utf-8"), config.ADMIN_USERNAME.encode("utf-8"))
        password_ok = verify_password(password, config.ADMIN_PASSWORD_HASH)
        if not (username_ok and password_ok):
            logger.warning("admin login refused username=%s", username)
            return AuthResponse(False, error="Invalid credentials", status_code=401)
        token = create_admin_token(config.ADMIN_USERNAME)
        return AuthResponse(True, user={"username": config.ADMIN_USERNAME, "role": ADMIN_ROLE}, token=token)
    except Exception as e:
        return handle_exception("admin_login", e)


def get_admin_from_token(token: str) -> Dict[str, Any]:
    """Normalise le payload du jeton en {username, role}; {} si invalide."""
    payload = verify_admin_token(token)
    if not payload:
        return {}
    return {"username": payload.get("sub"), "role": payload.get("role")}
