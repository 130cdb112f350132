"""
Adaptateurs Stripe (Checkout Session) et PayPal (Orders v2) vers le contrat PaymentProviderAdapter.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional

from backend.payments import paypal_client, stripe_client
from backend.payments.base import (
    Confirmation,
    Outcome,
    PaymentProviderAdapter,
    ProviderAttempt,
    ProviderError,
    UnknownProvider,
)

logger = logging.getLogger(__name__)

# Événements Checkout consommés; tous les autres types sont ignorés
STRIPE_EVENT_TYPES = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
)
# Ordres PayPal dont le lien d'approbation reste utilisable
PAYPAL_PAYABLE_STATUSES = ("CREATED", "PAYER_ACTION_REQUIRED")


def _amount(order: Mapping[str, Any]) -> Decimal:
    return Decimal(str(order.get("total_usd"))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    return headers.get(name) or headers.get(name.lower()) or headers.get(name.title())


class StripeAdapter(PaymentProviderAdapter):
    name = "stripe"

    def open_attempt(self, order, *, return_url, cancel_url):
        sep = "&" if "?" in return_url else "?"
        session = stripe_client.create_session(
            order_id=str(order["id"]),
            amount_cents=int(_amount(order) * 100),
            success_url=f"{return_url}{sep}session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=cancel_url,
            customer_email=order.get("email"),
        )
        if not session.get("id") or not session.get("url"):
            raise ProviderError("Session Stripe invalide", provider=self.name)
        return ProviderAttempt(provider_attempt_ref=session["id"], client_handle={"url": session["url"]})

    @staticmethod
    def confirmation_from_session(session: Mapping[str, Any]) -> Confirmation:
        """
        payment_status paid / no_payment_required -> SUCCEEDED (capture = payment_intent)
        status expired -> FAILED, sinon PENDING.
        """
        ref = str(session.get("id") or "")
        if session.get("payment_status") in ("paid", "no_payment_required"):
            intent = session.get("payment_intent")
            if isinstance(intent, Mapping):
                intent = intent.get("id")
            return Confirmation(ref, Outcome.SUCCEEDED, intent or None)
        if session.get("status") == "expired":
            return Confirmation(ref, Outcome.FAILED)
        return Confirmation(ref, Outcome.PENDING)

    def confirm(self, signal):
        session_id = (signal or {}).get("session_id")
        if not session_id:
            raise ValueError("session_id manquant")
        return self.fetch_status(str(session_id))

    def fetch_status(self, provider_attempt_ref):
        return self.confirmation_from_session(stripe_client.get_session(provider_attempt_ref))

    def resume_attempt(self, provider_attempt_ref):
        session = stripe_client.get_session(provider_attempt_ref)
        # url n'est renseignée que tant que la session est 'open'
        if session.get("status") != "open" or not session.get("url"):
            return None
        return ProviderAttempt(provider_attempt_ref=provider_attempt_ref, client_handle={"url": session["url"]})

    def parse_webhook(self, payload, headers):
        event = stripe_client.parse_event(payload, _header(headers, "Stripe-Signature"))
        event_type = event.get("type")
        if event_type not in STRIPE_EVENT_TYPES:
            logger.info("stripe webhook ignored type=%s", event_type)
            return None
        session = (event.get("data") or {}).get("object") or {}
        ref = str(session.get("id") or "")
        if event_type == "checkout.session.async_payment_succeeded":
            intent = session.get("payment_intent")
            return Confirmation(ref, Outcome.SUCCEEDED, intent or None)
        if event_type in ("checkout.session.async_payment_failed", "checkout.session.expired"):
            return Confirmation(ref, Outcome.FAILED)
        # completed: payé immédiatement (carte) ou en attente (paiement asynchrone)
        confirmation = self.confirmation_from_session(session)
        if confirmation.outcome == Outcome.FAILED:
            return Confirmation(ref, Outcome.PENDING)
        return confirmation


class PayPalAdapter(PaymentProviderAdapter):
    name = "paypal"

    def open_attempt(self, order, *, return_url, cancel_url):
        created = paypal_client.create_order(
            order_id=str(order["id"]),
            amount=_amount(order),
            return_url=return_url,
            cancel_url=cancel_url,
        )
        ref = created.get("id")
        url = paypal_client.approve_link(created)
        if not ref or not url:
            raise ProviderError("Ordre PayPal sans lien d'approbation", provider=self.name)
        return ProviderAttempt(provider_attempt_ref=str(ref), client_handle={"url": url})

    @staticmethod
    def confirmation_from_order(paypal_order: Dict[str, Any], ref: str) -> Confirmation:
        """
        COMPLETED -> SUCCEEDED avec l'id de capture (capture refusée -> FAILED, en attente -> PENDING)
        VOIDED -> FAILED, sinon PENDING.
        """
        status = (paypal_order.get("status") or "").upper()
        if status == "COMPLETED":
            capture = paypal_client.first_capture(paypal_order)
            capture_status = (capture.get("status") or "COMPLETED").upper()
            if capture_status in ("DECLINED", "FAILED"):
                return Confirmation(ref, Outcome.FAILED)
            if capture_status == "PENDING":
                return Confirmation(ref, Outcome.PENDING)
            return Confirmation(ref, Outcome.SUCCEEDED, capture.get("id"))
        if status == "VOIDED":
            return Confirmation(ref, Outcome.FAILED)
        return Confirmation(ref, Outcome.PENDING)

    def confirm(self, signal):
        """Retour navigateur ?token=<order id PayPal>: capture l'ordre approuvé."""
        token = (signal or {}).get("token")
        if not token:
            raise ValueError("token manquant")
        token = str(token)
        try:
            captured = paypal_client.capture_order(token)
        except ProviderError as e:
            if e.issue == "ORDER_ALREADY_CAPTURED":
                logger.info("paypal capture already done ref=%s", token)
                return self.fetch_status(token)
            raise
        return self.confirmation_from_order(captured, token)

    def fetch_status(self, provider_attempt_ref):
        return self.confirmation_from_order(paypal_client.get_order(provider_attempt_ref), provider_attempt_ref)

    def resume_attempt(self, provider_attempt_ref):
        paypal_order = paypal_client.get_order(provider_attempt_ref)
        if (paypal_order.get("status") or "").upper() not in PAYPAL_PAYABLE_STATUSES:
            return None
        url = paypal_client.approve_link(paypal_order)
        if not url:
            return None
        return ProviderAttempt(provider_attempt_ref=provider_attempt_ref, client_handle={"url": url})


_ADAPTERS = {
    StripeAdapter.name: StripeAdapter,
    PayPalAdapter.name: PayPalAdapter,
}


def get_adapter(provider: Optional[str]) -> PaymentProviderAdapter:
    cls = _ADAPTERS.get((provider or "").strip().lower())
    if cls is None:
        raise UnknownProvider(f"Prestataire de paiement inconnu: {provider}")
    return cls()
