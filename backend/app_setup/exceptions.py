"""
Gestionnaires d'exceptions.
- Erreurs métier (commandes, paiements, prix) -> JSON {"detail": ...} avec leur code HTTP.
- HTTPException -> JSON standard FastAPI.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.orders.models import OrderConflict, OrderError, OrderNotFound
from backend.payments.base import ProviderError, UnknownProvider, WebhookSignatureError
from backend.pricing.service import PricingUnavailable

logger = logging.getLogger(__name__)

# Erreurs laissées remonter par les vues jusqu'aux handlers ci-dessous
DOMAIN_ERRORS = (OrderError, ProviderError, WebhookSignatureError, UnknownProvider, PricingUnavailable)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OrderError)
    async def order_error(request: Request, exc: OrderError):
        if isinstance(exc, OrderNotFound):
            logger.warning("%s %s -> 404 %s", request.method, request.url.path, exc.message)
        elif isinstance(exc, OrderConflict):
            logger.warning("%s %s -> 409 %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(WebhookSignatureError)
    async def webhook_signature_error(request: Request, exc: WebhookSignatureError):
        logger.warning("webhook rejected path=%s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": "Invalid webhook signature"})

    @app.exception_handler(ProviderError)
    async def provider_error(request: Request, exc: ProviderError):
        return JSONResponse(status_code=502, content={"detail": exc.message, "provider": exc.provider})

    @app.exception_handler(UnknownProvider)
    async def unknown_provider(request: Request, exc: UnknownProvider):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(PricingUnavailable)
    async def pricing_unavailable(request: Request, exc: PricingUnavailable):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
