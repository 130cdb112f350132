"""
Fan-out des notifications après une transition de paiement.
Best-effort: chaque canal est isolé, ses erreurs sont journalisées et jamais propagées.
"""
from datetime import datetime, timezone
from typing import Any, Dict
import logging

from backend import config
from backend.notifications import discord, mailer, templates

logger = logging.getLogger(__name__)

EVENT_PAID = "paid"
EVENT_CANCELED = "canceled"

_EMBED_COLORS = {EVENT_PAID: 0x22C55E, EVENT_CANCELED: 0xEF4444}


def build_discord_payload(order: Dict[str, Any], event: str) -> Dict[str, Any]:
    provider = order.get("payment_provider") or "-"
    title = f"Payment confirmed ({provider})" if event == EVENT_PAID else f"Payment canceled ({provider})"
    fields = [
        {"name": "Order ID", "value": str(order.get("id") or "-"), "inline": True},
        {"name": "Email", "value": str(order.get("email") or "-"), "inline": True},
        {"name": "Total (USD)", "value": str(order.get("total_usd") or "-"), "inline": True},
        {"name": "Attempt", "value": str(order.get("provider_attempt_ref") or "-"), "inline": False},
    ]
    if event == EVENT_PAID:
        fields.append({"name": "Capture", "value": str(order.get("provider_capture_ref") or "-"), "inline": False})
    return {
        "username": config.NOTIFY_BRAND_NAME,
        "embeds": [{
            "title": title,
            "color": _EMBED_COLORS.get(event, 0x6B7280),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fields": fields,
        }],
    }


def _send_confirmation_email(order: Dict[str, Any]) -> None:
    if not order.get("email"):
        logger.warning("notifications: commande sans email order_id=%s", order.get("id"))
        return
    if not mailer.is_configured():
        logger.warning("notifications: Resend non configuré, email ignoré order_id=%s", order.get("id"))
        return
    mailer.send_email(
        to=order["email"],
        subject=templates.confirmation_subject(order),
        html=templates.render_confirmation_html(order),
        text=templates.render_confirmation_text(order),
    )
    logger.info("notifications: email de confirmation envoyé order_id=%s", order.get("id"))


# module backend.notifications.service
def fan_out(order: Dict[str, Any], event: str) -> None:
    """
    - paid: email de confirmation à l'acheteur + alerte Discord
    - canceled: alerte Discord uniquement
    """
    if event == EVENT_PAID:
        try:
            _send_confirmation_email(order)
        except Exception:
            logger.exception("notifications.fan_out email failed order_id=%s", order.get("id"))
    try:
        discord.send_webhook(build_discord_payload(order, event))
    except Exception:
        logger.exception("notifications.fan_out discord failed order_id=%s event=%s", order.get("id"), event)
