"""
Envoi d'email transactionnel via l'API HTTP Resend.
"""
import logging
from typing import Optional

import httpx

from backend import config

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailNotConfigured(RuntimeError):
    pass


# module backend.notifications.mailer
def is_configured() -> bool:
    return bool(config.RESEND_API_KEY and config.RESEND_FROM_EMAIL)


def send_email(*, to: str, subject: str, html: str, text: Optional[str] = None) -> dict:
    """
    POST https://api.resend.com/emails
    - EmailNotConfigured si RESEND_API_KEY / RESEND_FROM_EMAIL manquent
    - RuntimeError si Resend répond hors 2xx
    """
    if not is_configured():
        raise EmailNotConfigured("Resend non configuré (RESEND_API_KEY ou RESEND_FROM_EMAIL manquant)")
    payload = {"from": config.RESEND_FROM_EMAIL, "to": to, "subject": subject, "html": html}
    if text:
        payload["text"] = text
    headers = {
        "Authorization": f"Bearer {config.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }
    resp = httpx.post(RESEND_API_URL, json=payload, headers=headers, timeout=config.HTTP_TIMEOUT_SECONDS)
    if not (200 <= resp.status_code < 300):
        logger.error("send_email failed: status=%s body=%s", resp.status_code, resp.text)
        raise RuntimeError(f"Resend API error: {resp.status_code}")
    try:
        return resp.json()
    except ValueError:
        return {}
