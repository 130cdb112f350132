from typing import Optional, Dict, Any
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=1, max_length=200)


class AuthResponse:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        error: Optional[str] = None,
        status_code: int = 401,
    ):
        self.success = success
        self.user = user
        self.token = token
        self.error = error
        self.status_code = status_code

    @property
    def access_token(self):
        return self.token


def handle_exception(action: str, e: Exception) -> AuthResponse:
    logger.exception("Erreur %s", action)
    return AuthResponse(False, error=f"Erreur {action}", status_code=500)
