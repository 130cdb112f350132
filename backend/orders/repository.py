"""
Accès aux données pour la feature 'orders' (table 'orders').

Chemin cœur (création, rattachement de tentative, transitions de paiement):
- chaque écriture est UNE mise à jour conditionnelle évaluée atomiquement par PostgreSQL
  (where id=? and status='pending' / and provider_attempt_ref is null);
- les erreurs Supabase sont propagées: un None silencieux serait lu comme "introuvable".

Back-office (liste, stats, champs admin): best-effort, valeurs neutres en cas d'erreur.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import backend.infra.supabase_client as supabase_client
from backend.orders.models import (
    OrderConflict,
    OrderNotFound,
    STATUS_CANCELED,
    STATUS_PAID,
    STATUS_PENDING,
    TransitionResult,
)

logger = logging.getLogger(__name__)

TABLE = "orders"
ADMIN_FIELDS = ("order_status", "notes", "cost")


def _orders():
    return supabase_client.get_service_supabase().table(TABLE)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(res) -> Optional[Dict[str, Any]]:
    rows = getattr(res, "data", None) or []
    return rows[0] if isinstance(rows, list) and rows else None


# module backend.orders.repository
def get_order(order_id: str) -> Optional[Dict[str, Any]]:
    res = _orders().select("*").eq("id", str(order_id)).limit(1).execute()
    return _first(res)


def find_by_provider_attempt_ref(ref: str) -> Optional[Dict[str, Any]]:
    """Commande rattachée à une session Stripe / un ordre PayPal (colonne unique)."""
    if not ref:
        return None
    res = _orders().select("*").eq("provider_attempt_ref", str(ref)).limit(1).execute()
    return _first(res)


def create_order(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insert-or-ignore sur 'id' puis relecture.
    - Un doublon ne modifie jamais la ligne existante: la ligne relue est renvoyée telle quelle
      (la comparaison du contenu est faite par le service).
    """
    row = dict(data)
    row.setdefault("status", STATUS_PENDING)
    row.setdefault("order_status", "pending")
    _orders().upsert(row, on_conflict="id", ignore_duplicates=True).execute()
    stored = get_order(row["id"])
    if not stored:
        # ignore_duplicates + ligne absente à la relecture: suppression concurrente
        raise OrderNotFound("Commande introuvable après création", order_id=row["id"])
    return stored


def attach_provider_attempt(order_id: str, provider: str, ref: str) -> Dict[str, Any]:
    """
    Enregistre la tentative de paiement (au plus une par commande).
    - 0 ligne modifiée: OrderNotFound si la commande n'existe pas, sinon OrderConflict.
    """
    res = (
        _orders()
        .update({"payment_provider": provider, "provider_attempt_ref": ref})
        .eq("id", str(order_id))
        .eq("status", STATUS_PENDING)
        .is_("provider_attempt_ref", "null")
        .execute()
    )
    updated = _first(res)
    if updated:
        return updated
    current = get_order(order_id)
    if not current:
        raise OrderNotFound("Commande introuvable", order_id=str(order_id))
    logger.warning(
        "orders.attach_provider_attempt conflict order_id=%s existing_ref=%s status=%s",
        order_id, current.get("provider_attempt_ref"), current.get("status"),
    )
    raise OrderConflict("Une tentative de paiement existe déjà pour cette commande", order_id=str(order_id))


def _transition(order_id: str, target: str, changes: Dict[str, Any]) -> TransitionResult:
    res = (
        _orders()
        .update(changes)
        .eq("id", str(order_id))
        .eq("status", STATUS_PENDING)
        .execute()
    )
    if _first(res):
        return TransitionResult.APPLIED
    current = get_order(order_id)
    if not current:
        raise OrderNotFound("Commande introuvable", order_id=str(order_id))
    status = current.get("status")
    if status == target:
        return TransitionResult.ALREADY_APPLIED
    logger.error(
        "orders.transition refused order_id=%s current=%s target=%s",
        order_id, status, target,
    )
    raise OrderConflict(f"Commande déjà {status}, transition vers {target} refusée", order_id=str(order_id))


def transition_to_paid(order_id: str, capture_ref: Optional[str]) -> TransitionResult:
    return _transition(order_id, STATUS_PAID, {
        "status": STATUS_PAID,
        "provider_capture_ref": capture_ref,
        "paid_at": _now_iso(),
    })


def transition_to_canceled(order_id: str) -> TransitionResult:
    return _transition(order_id, STATUS_CANCELED, {
        "status": STATUS_CANCELED,
        "canceled_at": _now_iso(),
    })


def list_orders(limit: int = 100) -> List[dict]:
    """
    Commandes pour l'admin, plus récentes d'abord.
    """
    try:
        res = _orders().select("*").order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("orders.repository.list_orders failed limit=%s", limit)
        return []


def update_admin_fields(order_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Met à jour uniquement order_status / notes / cost.
    Les colonnes de paiement (status, provider_*, total_usd) ne passent jamais par ici.
    """
    changes = {k: v for k, v in (data or {}).items() if k in ADMIN_FIELDS}
    if not changes:
        return get_order(order_id)
    try:
        res = _orders().update(changes).eq("id", str(order_id)).execute()
        return _first(res)
    except Exception:
        logger.exception("orders.repository.update_admin_fields failed order_id=%s", order_id)
        return None


def delete_order(order_id: str) -> bool:
    """True si une ligne a été supprimée; les erreurs de stockage remontent à l'appelant."""
    res = _orders().delete().eq("id", str(order_id)).execute()
    return bool(res.data)


def count_orders_by_status() -> Dict[str, int]:
    """
    {"total": n, "pending": n, "paid": n, "canceled": n} sur la colonne 'status'.
    """
    counts = {"total": 0, STATUS_PENDING: 0, STATUS_PAID: 0, STATUS_CANCELED: 0}
    try:
        res = _orders().select("status").execute()
    except Exception:
        logger.exception("orders.repository.count_orders_by_status failed")
        return counts
    for row in res.data or []:
        status = row.get("status")
        counts["total"] += 1
        if status in counts:
            counts[status] += 1
    return counts
