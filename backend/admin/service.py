# module backend.admin.service

from typing import List, Optional, Dict, Any
import logging
import math

from backend.orders import repository as orders_repository
from backend.orders.models import ORDER_STATUSES, OrderNotFound, OrderValidationError
from backend.pricing import service as pricing_service

logger = logging.getLogger(__name__)

PRICING_FIELDS = ("base", "customSong", "expressDelivery")


def _is_amount(value: Any) -> bool:
    """Nombre fini >= 0 (les booléens et chaînes sont refusés)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value) and value >= 0


def list_orders(limit: int = 100) -> List[dict]:
    return orders_repository.list_orders(limit=limit)


def get_order(order_id: str) -> dict:
    order = orders_repository.get_order(order_id)
    if not order:
        raise OrderNotFound("Commande introuvable", order_id=order_id)
    return order


def validate_admin_changes(body: Dict[str, Any]) -> Dict[str, Any]:
    """
    Champs back-office uniquement (orderStatus/order_status, notes, cost).
    Toute autre clé est ignorée: status, provider_* et total_usd ne sont jamais modifiables ici.
    """
    data: Dict[str, Any] = {}
    status = body.get("order_status", body.get("orderStatus"))
    if status is not None:
        if status not in ORDER_STATUSES:
            raise OrderValidationError("Invalid order status")
        data["order_status"] = status
    if "notes" in body:
        notes = body.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise OrderValidationError("Invalid notes")
        data["notes"] = notes
    if "cost" in body:
        cost = body.get("cost")
        if not _is_amount(cost):
            raise OrderValidationError("Invalid cost value")
        data["cost"] = round(float(cost), 2)
    if not data:
        raise OrderValidationError("Aucune donnée à mettre à jour")
    return data


def update_order(order_id: str, body: Dict[str, Any]) -> dict:
    data = validate_admin_changes(body)
    get_order(order_id)
    updated = orders_repository.update_admin_fields(order_id, data)
    if not updated:
        raise RuntimeError(f"Mise à jour impossible pour la commande {order_id}")
    logger.info("admin.update_order order_id=%s fields=%s", order_id, sorted(data))
    return updated


def delete_order(order_id: str) -> bool:
    return orders_repository.delete_order(order_id)


def get_stats() -> Dict[str, int]:
    return orders_repository.count_orders_by_status()


def get_pricing() -> Dict[str, float]:
    return pricing_service.load_pricing_settings().as_dict()


def update_pricing(body: Dict[str, Any]) -> Dict[str, float]:
    """Mise à jour partielle: base / customSong / expressDelivery (nombres finis >= 0)."""
    changes: Dict[str, Any] = {}
    for key in PRICING_FIELDS:
        if key not in body or body[key] is None:
            continue
        if not _is_amount(body[key]):
            raise ValueError(f"Invalid {key}")
        changes[key] = body[key]
    return pricing_service.update_pricing_settings(changes).as_dict()
