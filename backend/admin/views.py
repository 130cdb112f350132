import logging
from typing import Dict, Any

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.admin import service as admin_service
from backend.app_setup.exceptions import DOMAIN_ERRORS
from backend.utils.rate_limit import optional_rate_limit
from backend.utils.security import require_admin

logger = logging.getLogger(__name__)

# module backend.admin.views
router = APIRouter(prefix="/admin", tags=["Admin"])


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="JSON invalide")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Objet JSON attendu")
    return body


# API JSON: stats dashboard (comptes par statut de paiement)
@router.get("/api/stats")
def admin_stats(admin: dict = Depends(require_admin)):
    return JSONResponse(admin_service.get_stats())

# API JSON: commandes
@router.get("/api/orders")
def admin_list_orders(limit: int = 100, admin: dict = Depends(require_admin)):
    data = admin_service.list_orders(limit=max(1, min(limit, 500)))
    return JSONResponse({"items": data or []})

@router.get("/api/orders/{order_id}")
def admin_get_order(order_id: str, admin: dict = Depends(require_admin)):
    return JSONResponse({"item": admin_service.get_order(order_id)})

@router.put("/api/orders/{order_id}", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
@router.post("/api/orders/{order_id}/update", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
async def admin_update_order(order_id: str, request: Request, admin: dict = Depends(require_admin)):
    """
    Body: {order_status?|orderStatus?, notes?, cost?}
    - order_status: pending | processing | completed | cancelled
    - cost: nombre >= 0
    """
    body = await _json_body(request)
    try:
        updated = admin_service.update_order(order_id, body)
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("admin.update_order failed id=%s", order_id)
        raise HTTPException(status_code=500, detail="Failed to update order")
    return JSONResponse({"ok": True, "item": updated})

@router.delete("/api/orders/{order_id}")
@router.post("/api/orders/{order_id}/delete")
def admin_delete_order(order_id: str, admin: dict = Depends(require_admin)):
    try:
        ok = admin_service.delete_order(order_id)
    except Exception:
        logger.exception("admin.delete_order failed id=%s", order_id)
        raise HTTPException(status_code=500, detail="Failed to delete order")
    if not ok:
        return JSONResponse({"ok": False}, status_code=404)
    logger.info("admin.delete_order order_id=%s by=%s", order_id, admin.get("username"))
    return JSONResponse({"ok": True})

# API JSON: prix
@router.get("/api/pricing")
def admin_get_pricing(admin: dict = Depends(require_admin)):
    return JSONResponse(admin_service.get_pricing())

@router.put("/api/pricing")
async def admin_update_pricing(request: Request, admin: dict = Depends(require_admin)):
    """Body: {base?, customSong?, expressDelivery?}; mise à jour partielle."""
    body = await _json_body(request)
    try:
        pricing = admin_service.update_pricing(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DOMAIN_ERRORS:
        raise
    except Exception:
        logger.exception("admin.update_pricing failed")
        raise HTTPException(status_code=500, detail="Failed to update pricing")
    return JSONResponse({"success": True, "pricing": pricing})
