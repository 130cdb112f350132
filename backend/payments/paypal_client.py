"""
Client PayPal (API REST Orders v2) via httpx.
- Jeton OAuth2 client_credentials demandé à chaque opération (pas de cache partagé entre workers)
- Sandbox / live selon PAYPAL_ENV
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from backend import config
from backend.payments.base import ProviderError

logger = logging.getLogger(__name__)

API_BASES = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


def api_base() -> str:
    return API_BASES.get(config.PAYPAL_ENV, API_BASES["sandbox"])


def _issue(body: Any) -> Optional[str]:
    """Premier code 'issue' d'une réponse d'erreur PayPal (ex: ORDER_ALREADY_CAPTURED)."""
    if not isinstance(body, dict):
        return None
    details = body.get("details") or []
    if details and isinstance(details[0], dict):
        return details[0].get("issue")
    return body.get("name")


def _json(resp: httpx.Response) -> Dict[str, Any]:
    try:
        return resp.json()
    except ValueError:
        return {}


# module backend.payments.paypal_client
def get_access_token() -> str:
    if not config.PAYPAL_CLIENT_ID or not config.PAYPAL_CLIENT_SECRET:
        raise ProviderError("Identifiants PayPal manquants", provider="paypal")
    try:
        resp = httpx.post(
            f"{api_base()}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(config.PAYPAL_CLIENT_ID, config.PAYPAL_CLIENT_SECRET),
            headers={"Accept": "application/json"},
            timeout=config.HTTP_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as e:
        logger.exception("paypal_client.get_access_token transport error")
        raise ProviderError(f"PayPal injoignable: {e}", provider="paypal") from e
    if not (200 <= resp.status_code < 300):
        logger.error("paypal_client.get_access_token failed: status=%s body=%s", resp.status_code, resp.text)
        raise ProviderError("Authentification PayPal refusée", provider="paypal")
    token = _json(resp).get("access_token")
    if not token:
        raise ProviderError("Réponse OAuth PayPal sans access_token", provider="paypal")
    return token


def _request(method: str, path: str, *, json: Optional[Dict[str, Any]] = None, request_id: Optional[str] = None) -> Dict[str, Any]:
    headers = {
        "Authorization": f"Bearer {get_access_token()}",
        "Content-Type": "application/json",
    }
    if request_id:
        headers["PayPal-Request-Id"] = request_id
    try:
        resp = httpx.request(method, f"{api_base()}{path}", json=json, headers=headers, timeout=config.HTTP_TIMEOUT_SECONDS)
    except httpx.HTTPError as e:
        logger.exception("paypal_client %s %s transport error", method, path)
        raise ProviderError(f"PayPal injoignable: {e}", provider="paypal") from e
    body = _json(resp)
    if 200 <= resp.status_code < 300:
        return body
    issue = _issue(body)
    logger.error("paypal_client %s %s failed: status=%s issue=%s", method, path, resp.status_code, issue)
    raise ProviderError(f"Erreur PayPal ({resp.status_code})", provider="paypal", issue=issue)


def create_order(*, order_id: str, amount: Decimal, return_url: str, cancel_url: str, description: str = "") -> Dict[str, Any]:
    """
    Crée un ordre PayPal intent=CAPTURE pour le montant USD (2 décimales).
    custom_id = id de la commande (retrouvé dans la capture).
    """
    payload = {
        "intent": "CAPTURE",
        "purchase_units": [{
            "reference_id": order_id,
            "custom_id": order_id,
            "description": description or config.STRIPE_PRODUCT_NAME,
            "amount": {"currency_code": "USD", "value": f"{amount:.2f}"},
        }],
        "application_context": {
            "brand_name": config.NOTIFY_BRAND_NAME,
            "user_action": "PAY_NOW",
            "shipping_preference": "NO_SHIPPING",
            "return_url": return_url,
            "cancel_url": cancel_url,
        },
    }
    return _request("POST", "/v2/checkout/orders", json=payload, request_id=f"create-{order_id}")


def capture_order(paypal_order_id: str) -> Dict[str, Any]:
    return _request("POST", f"/v2/checkout/orders/{paypal_order_id}/capture", json={}, request_id=f"capture-{paypal_order_id}")


def get_order(paypal_order_id: str) -> Dict[str, Any]:
    return _request("GET", f"/v2/checkout/orders/{paypal_order_id}")


def approve_link(paypal_order: Dict[str, Any]) -> Optional[str]:
    for link in paypal_order.get("links") or []:
        if link.get("rel") in ("approve", "payer-action"):
            return link.get("href")
    return None


def first_capture(paypal_order: Dict[str, Any]) -> Dict[str, Any]:
    """purchase_units[0].payments.captures[0] ou {}."""
    units = paypal_order.get("purchase_units") or [{}]
    captures = ((units[0] or {}).get("payments") or {}).get("captures") or [{}]
    return captures[0] or {}
