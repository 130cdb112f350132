"""
Rendu des emails de confirmation de commande (HTML + texte brut) via Jinja2.
Les gabarits vivent dans email_templates/; l'auto-échappement est actif pour le HTML seulement.
"""
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from backend import config

TEMPLATES_DIR = Path(__file__).resolve().parent / "email_templates"


def format_total(value: Any) -> str:
    try:
        return f"${Decimal(str(value)):.2f} USD"
    except (InvalidOperation, ValueError):
        return "-"


env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=True),
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)
env.filters["total"] = format_total


def _context(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        # dict complet: les colonnes absentes valent None plutôt que de lever
        "order": {k: order.get(k) for k in ("id", "created_at", "total_usd", "music_link", "gift_note", "message")},
        "delivery": "Express (12-24 hours)" if order.get("delivery_method") == "express" else "Standard (24-48 hours)",
        "music": "Custom song" if order.get("music_option") == "custom" else "We choose music",
    }


def confirmation_subject(order: Dict[str, Any]) -> str:
    return f"{config.NOTIFY_BRAND_NAME} order confirmation ({order.get('id')})"


def render_confirmation_html(order: Dict[str, Any]) -> str:
    return env.get_template("order_confirmation.html").render(**_context(order))


def render_confirmation_text(order: Dict[str, Any]) -> str:
    return env.get_template("order_confirmation.txt").render(**_context(order))
