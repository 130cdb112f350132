import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_303_SEE_OTHER

from backend import config
from backend.app_setup.exceptions import DOMAIN_ERRORS
from backend.orders import repository as orders_repo
from backend.orders.models import OrderNotFound
from backend.payments.adapters import get_adapter
from backend.payments.base import Outcome, ProviderError
from backend.reconciliation import service as reconciliation

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


def _site_redirect(path: str, order_id: Optional[str] = None) -> RedirectResponse:
    url = f"{config.SITE_URL}{path}"
    if order_id and not path.startswith("/#"):
        sep = "&" if "?" in path else "?"
        url = f"{url}{sep}order_id={order_id}"
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)


# module backend.payments.views
@router.post("/webhook/stripe", include_in_schema=False)
@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout).
    - Signature: vérifiée avant tout traitement (Stripe-Signature + STRIPE_WEBHOOK_SECRET), sinon 400
    - Types non consommés: {"status": "ignored"}
    - Rejeu / état terminal opposé: 200 (rien n'est réappliqué, Stripe ne doit pas réessayer)
    - Tentative inconnue: 404
    """
    payload = await request.body()
    adapter = get_adapter("stripe")
    try:
        confirmation = await run_in_threadpool(adapter.parse_webhook, payload, request.headers)
        if confirmation is None:
            return JSONResponse({"status": "ignored"})
        if not confirmation.provider_attempt_ref:
            raise OrderNotFound("Événement Stripe sans identifiant de session")
        result = await run_in_threadpool(reconciliation.apply_confirmation, confirmation)
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=500, detail="Webhook processing failed")
    logger.info("payments.webhook ref=%s outcome=%s transition=%s",
                confirmation.provider_attempt_ref, confirmation.outcome.value, result.transition.value)
    return JSONResponse({"status": "ok", "order_id": result.order_id, "transition": result.transition.value})


def confirm_and_redirect(provider: str, ref: str, order_id: str, signal: Dict[str, Any]) -> RedirectResponse:
    """
    Retour navigateur: vérifie que la tentative appartient bien à order_id, confirme chez le
    prestataire, réconcilie, puis redirige vers la page succès / en attente / échec du site.
    """
    failure = _site_redirect(config.CHECKOUT_FAILURE_PATH)
    try:
        order = orders_repo.find_by_provider_attempt_ref(ref)
        if not order or str(order.get("id")) != str(order_id) or order.get("payment_provider") != provider:
            logger.warning("payments.return attempt mismatch provider=%s ref=%s order_id=%s", provider, ref, order_id)
            return failure
        confirmation = get_adapter(provider).confirm(signal)
        result = reconciliation.apply_confirmation(confirmation)
    except (ProviderError, OrderNotFound, ValueError) as e:
        logger.warning("payments.return failed provider=%s ref=%s: %s", provider, ref, e)
        return failure
    except Exception:
        logger.exception("payments.return error provider=%s ref=%s", provider, ref)
        return failure

    if result.transition == reconciliation.Transition.CONFLICT:
        return failure
    if result.outcome == Outcome.SUCCEEDED:
        return _site_redirect(config.CHECKOUT_SUCCESS_PATH, order_id)
    if result.outcome == Outcome.PENDING:
        return _site_redirect(config.CHECKOUT_PENDING_PATH, order_id)
    return failure


@router.get("/stripe/return")
def stripe_return(session_id: str, order_id: str):
    """Success URL de la session Checkout (?session_id={CHECKOUT_SESSION_ID}&order_id=...)."""
    return confirm_and_redirect("stripe", session_id, order_id, {"session_id": session_id})


@router.get("/paypal/return")
def paypal_return(token: str, order_id: str, PayerID: Optional[str] = None):
    """Return URL PayPal (?token=<order id PayPal>&PayerID=...): capture puis réconciliation."""
    return confirm_and_redirect("paypal", token, order_id, {"token": token, "payer_id": PayerID})
