import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.app_setup.exceptions import DOMAIN_ERRORS
from backend.orders import service as orders_service
from backend.orders.models import OrderIntakeRequest
from backend.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

# module backend.orders.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_order(payload: OrderIntakeRequest):
    """
    Crée la commande (pending) et ouvre le paiement chez le prestataire choisi.
    - Montant recalculé côté serveur; total_price éventuel ignoré
    - Idempotent sur id: même contenu => pas de doublon; contenu différent => 409
    - Réponse: {order_id, provider, total_usd, client_handle: {url}}
    - Erreurs: 400/422 validation, 409 conflit, 502 prestataire, 503 prix indisponibles
    """
    try:
        return JSONResponse(orders_service.create_order_and_checkout(payload))
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("orders.create_order failed id=%s", payload.id)
        raise HTTPException(status_code=500, detail="Création de commande impossible")


@router.get("/{order_id}")
def get_order(order_id: UUID):
    """Sous-ensemble public: {id, status, total_usd, payment_provider}."""
    try:
        return orders_service.get_public_order(str(order_id))
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("orders.get_order failed id=%s", order_id)
        raise HTTPException(status_code=500, detail="Lecture de commande impossible")


@router.post("/{order_id}/refresh", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def refresh_order(order_id: UUID):
    """
    Interroge le prestataire puis réconcilie (utile si le webhook n'est pas arrivé).
    Réponse: {order_id, status, transition}
    """
    try:
        return orders_service.refresh_order_status(str(order_id))
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("orders.refresh_order failed id=%s", order_id)
        raise HTTPException(status_code=500, detail="Rafraîchissement impossible")
