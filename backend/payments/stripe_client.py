"""
Client Stripe: centralise les appels et la configuration du SDK.
Les erreurs SDK sont converties en ProviderError / WebhookSignatureError.
"""
import logging
from typing import Any, Dict, Optional

import stripe

from backend import config
from backend.payments.base import ProviderError, WebhookSignatureError

logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict (les tests injectent directement des dicts)."""
    if isinstance(obj, dict):
        return dict(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


# module backend.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Sans clé: ProviderError (aucun appel réseau tenté).
    """
    if not config.STRIPE_SECRET_KEY:
        raise ProviderError("STRIPE_SECRET_KEY manquant", provider="stripe")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe


def create_session(
    *,
    order_id: str,
    amount_cents: int,
    success_url: str,
    cancel_url: str,
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode payment, une ligne en USD).
    - client_reference_id et metadata.order_id portent l'id de la commande
    - idempotency_key dérivée de la commande: un retry renvoie la même session
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = dict(
        mode="payment",
        line_items=[{
            "price_data": {
                "currency": "usd",
                "product_data": {"name": config.STRIPE_PRODUCT_NAME},
                "unit_amount": amount_cents,
            },
            "quantity": 1,
        }],
        success_url=success_url,
        cancel_url=cancel_url,
        client_reference_id=order_id,
        metadata={"order_id": order_id},
        payment_method_types=["card"],
    )
    if customer_email:
        params["customer_email"] = customer_email
    try:
        session = stripe.checkout.Session.create(idempotency_key=f"checkout-{order_id}", **params)
    except Exception as e:
        logger.exception("stripe_client.create_session failed order_id=%s", order_id)
        raise ProviderError(f"Création de session Stripe impossible: {e}", provider="stripe") from e
    return _as_dict(session)


def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "status", "payment_status", "payment_intent", "metadata".
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except Exception as e:
        logger.exception("stripe_client.get_session failed session_id=%s", session_id)
        raise ProviderError(f"Session Stripe introuvable: {e}", provider="stripe") from e
    return _as_dict(session)


def parse_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """
    Valide un événement Stripe signé (webhook) et le retourne sous forme de dict.
    - Secret absent ou signature invalide: WebhookSignatureError (jamais de parsing sans vérification).
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        raise WebhookSignatureError("STRIPE_WEBHOOK_SECRET manquant")
    if not sig_header:
        raise WebhookSignatureError("En-tête Stripe-Signature manquant")
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except Exception as e:
        raise WebhookSignatureError(f"Webhook Stripe invalide: {e}") from e
    return _as_dict(event)
