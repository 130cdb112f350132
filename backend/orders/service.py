"""
Cas d'usage 'orders': intake, ouverture du paiement, lecture publique, rafraîchissement.
"""
from decimal import Decimal
from typing import Any, Dict, Mapping
import logging

from backend import config
from backend.orders import repository
from backend.orders.models import (
    BUSINESS_FIELDS,
    OrderConflict,
    OrderIntakeRequest,
    OrderNotFound,
    STATUS_PENDING,
    public_view,
)
from backend.payments.adapters import get_adapter
from backend.payments.base import ProviderAttempt
from backend.pricing import service as pricing_service
from backend.reconciliation import service as reconciliation

logger = logging.getLogger(__name__)


def _norm(value: Any) -> str:
    return "" if value is None else str(value).strip()


def same_business_payload(stored: Mapping[str, Any], submitted: Mapping[str, Any]) -> bool:
    return all(_norm(stored.get(f)) == _norm(submitted.get(f)) for f in BUSINESS_FIELDS)


def return_urls(provider: str, order_id: str) -> Dict[str, str]:
    """URLs de retour navigateur: endpoint de confirmation de l'API, annulation vers le site."""
    return {
        "return_url": f"{config.BASE_URL}/api/v1/payments/{provider}/return?order_id={order_id}",
        "cancel_url": f"{config.SITE_URL}{config.CHECKOUT_FAILURE_PATH}",
    }


def _checkout_response(order_id: str, provider: str, total_usd: Any, attempt: ProviderAttempt) -> Dict[str, Any]:
    return {
        "order_id": order_id,
        "provider": provider,
        "total_usd": float(Decimal(str(total_usd))),
        "client_handle": attempt.client_handle,
    }


def _resume_existing_attempt(order: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Re-soumission d'une commande dont le paiement est déjà ouvert (retry après timeout réseau):
    renvoie le handle existant, sans nouvelle tentative chez le prestataire.
    """
    order_id = str(order["id"])
    if order.get("status") != STATUS_PENDING:
        raise OrderConflict(f"Commande déjà {order.get('status')}", order_id=order_id)
    adapter = get_adapter(order.get("payment_provider"))
    attempt = adapter.resume_attempt(str(order["provider_attempt_ref"]))
    if attempt is None:
        logger.warning("orders.intake attempt no longer payable order_id=%s ref=%s", order_id, order["provider_attempt_ref"])
        raise OrderConflict("Paiement déjà initié et plus disponible pour cette commande", order_id=order_id)
    logger.info("orders.intake resubmission order_id=%s ref=%s", order_id, attempt.provider_attempt_ref)
    return _checkout_response(order_id, adapter.name, order.get("total_usd"), attempt)


# module backend.orders.service
def create_order_and_checkout(req: OrderIntakeRequest) -> Dict[str, Any]:
    """
    1) instantané des prix, montant calculé côté serveur (total_price client ignoré)
    2) création idempotente sur l'id (même contenu => no-op, contenu différent => OrderConflict)
    3) ouverture de la tentative chez le prestataire puis rattachement (au plus une par commande);
       si une tentative est déjà rattachée, son handle est renvoyé tel quel
    Retour: {order_id, provider, total_usd, client_handle: {url}}
    """
    adapter = get_adapter(req.payment_method)
    settings = pricing_service.load_pricing_settings()

    data = req.to_order_data()
    total = pricing_service.resolve_price(data, settings)
    data["total_usd"] = f"{total:.2f}"
    if req.total_price is not None and pricing_service.to_money(req.total_price) != total:
        logger.info("orders.intake client total ignored order_id=%s client=%s server=%s", data["id"], req.total_price, total)

    order = repository.create_order(data)
    if not same_business_payload(order, data):
        logger.warning("orders.intake id reuse with different payload order_id=%s", data["id"])
        raise OrderConflict("Identifiant de commande déjà utilisé", order_id=data["id"])
    if order.get("provider_attempt_ref") or order.get("status") != STATUS_PENDING:
        if order.get("payment_provider") and order.get("payment_provider") != adapter.name:
            raise OrderConflict("Paiement déjà initié chez un autre prestataire", order_id=data["id"])
        return _resume_existing_attempt(order)

    attempt = adapter.open_attempt(order, **return_urls(adapter.name, data["id"]))
    try:
        repository.attach_provider_attempt(data["id"], adapter.name, attempt.provider_attempt_ref)
    except OrderConflict:
        # soumission concurrente: l'autre requête a rattaché sa tentative la première
        current = repository.get_order(data["id"])
        if not current or not current.get("provider_attempt_ref"):
            raise
        return _resume_existing_attempt(current)
    logger.info("orders.intake created order_id=%s provider=%s ref=%s total=%s",
                data["id"], adapter.name, attempt.provider_attempt_ref, order.get("total_usd"))
    return _checkout_response(data["id"], adapter.name, order.get("total_usd"), attempt)


def get_public_order(order_id: str) -> Dict[str, Any]:
    order = repository.get_order(order_id)
    if not order:
        raise OrderNotFound("Commande introuvable", order_id=order_id)
    return public_view(order)


def refresh_order_status(order_id: str) -> Dict[str, Any]:
    """
    Interroge le prestataire (fetch_status, sans effet de bord) puis réconcilie.
    Sans tentative rattachée: rien à interroger (transition 'noop').
    """
    order = repository.get_order(order_id)
    if not order:
        raise OrderNotFound("Commande introuvable", order_id=order_id)
    ref = order.get("provider_attempt_ref")
    if not ref:
        return {"order_id": order_id, "status": order.get("status"), "transition": reconciliation.Transition.NOOP.value}

    adapter = get_adapter(order.get("payment_provider"))
    confirmation = adapter.fetch_status(ref)
    result = reconciliation.apply_confirmation(confirmation)
    current = repository.get_order(order_id) or order
    return {"order_id": order_id, "status": current.get("status"), "transition": result.transition.value}
