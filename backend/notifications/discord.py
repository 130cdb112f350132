"""
Alerte interne: embed posté sur un webhook Discord.
"""
import logging
from typing import Any, Dict

import httpx

from backend import config

logger = logging.getLogger(__name__)


# module backend.notifications.discord
def send_webhook(payload: Dict[str, Any]) -> bool:
    """
    Retourne False sans appel réseau si DISCORD_WEBHOOK_URL est vide.
    Lève RuntimeError si Discord répond hors 2xx.
    """
    if not config.DISCORD_WEBHOOK_URL:
        return False
    resp = httpx.post(config.DISCORD_WEBHOOK_URL, json=payload, timeout=config.HTTP_TIMEOUT_SECONDS)
    if not (200 <= resp.status_code < 300):
        logger.error("discord webhook failed: status=%s body=%s", resp.status_code, resp.text)
        raise RuntimeError(f"Discord webhook error: {resp.status_code}")
    return True
