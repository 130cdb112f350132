"""Résolution du prix facturé.

Le montant d'une commande est toujours calculé ici, à partir d'un instantané de la
configuration de prix lu en début de requête (PricingSettings). Un total envoyé par
le client n'est jamais utilisé comme montant à facturer.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional
import logging

from backend.pricing import repository

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

SETTING_KEYS = {
    "base": "price_base",
    "custom_song": "price_custom_song",
    "express_delivery": "price_express_delivery",
}

MUSIC_OPTIONS = ("default", "custom")
DELIVERY_METHODS = ("standard", "express")


class PricingUnavailable(Exception):
    """La table de configuration des prix est illisible: la création de commande doit s'arrêter."""


@dataclass(frozen=True)
class PricingSettings:
    base: Decimal
    custom_song: Decimal
    express_delivery: Decimal

    def as_dict(self) -> Dict[str, float]:
        return {
            "base": float(self.base),
            "customSong": float(self.custom_song),
            "expressDelivery": float(self.express_delivery),
        }


# Valeurs de repli documentées, utilisées uniquement pour une clé absente ou non numérique
DEFAULT_PRICING = PricingSettings(
    base=Decimal("19.99"),
    custom_song=Decimal("9.99"),
    express_delivery=Decimal("7.99"),
)


def to_money(value: Any) -> Optional[Decimal]:
    """Convertit str|int|float|Decimal en Decimal arrondi au centime; None si invalide, négatif ou non fini."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def load_pricing_settings() -> PricingSettings:
    """
    Lit l'instantané courant de la configuration de prix.
    - Clé absente ou non numérique: repli sur DEFAULT_PRICING pour cette clé.
    - Table illisible: PricingUnavailable (aucun montant par défaut n'est substitué).
    """
    try:
        raw = repository.fetch_settings(SETTING_KEYS.values())
    except Exception as e:
        logger.exception("pricing.load_pricing_settings: settings unreadable")
        raise PricingUnavailable("Configuration des prix indisponible") from e

    values = {}
    for field, key in SETTING_KEYS.items():
        parsed = to_money(raw.get(key))
        if parsed is None:
            if key in raw:
                logger.warning("pricing setting %s invalide (%r), repli sur la valeur par défaut", key, raw.get(key))
            parsed = getattr(DEFAULT_PRICING, field)
        values[field] = parsed
    return PricingSettings(**values)


def resolve_price(options: Mapping[str, Any], settings: PricingSettings) -> Decimal:
    """
    base + (music_option == custom ? custom_song : 0) + (delivery_method == express ? express_delivery : 0)
    Déterministe pour un même instantané; arrondi au centime.
    """
    total = settings.base
    if options.get("music_option") == "custom":
        total += settings.custom_song
    if options.get("delivery_method") == "express":
        total += settings.express_delivery
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


def update_pricing_settings(changes: Mapping[str, Any]) -> PricingSettings:
    """
    Mise à jour partielle (admin): fusionne avec l'instantané courant puis écrit les trois clés.
    changes: {"base"?, "customSong"?, "expressDelivery"?} (nombres finis >= 0, validés par l'appelant).
    """
    current = load_pricing_settings()
    aliases = {"base": "base", "customSong": "custom_song", "expressDelivery": "express_delivery"}
    merged = {field: getattr(current, field) for field in SETTING_KEYS}
    for public_name, field in aliases.items():
        if changes.get(public_name) is not None:
            amount = to_money(changes[public_name])
            if amount is None:
                raise ValueError(f"Invalid {public_name}")
            merged[field] = amount
    repository.upsert_settings({SETTING_KEYS[f]: str(v) for f, v in merged.items()})
    logger.info("pricing updated base=%s custom_song=%s express_delivery=%s",
                merged["base"], merged["custom_song"], merged["express_delivery"])
    return PricingSettings(**merged)
