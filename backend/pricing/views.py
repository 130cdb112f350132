# module backend.pricing.views
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend.pricing import service as pricing_service

router = APIRouter(prefix="/api/v1/pricing", tags=["Pricing API"])

@router.get("")
def get_pricing():
    """
    Prix courants pour l'affichage (estimation côté client).
    Le montant réellement facturé est recalculé côté serveur à la création de la commande.
    """
    settings = pricing_service.load_pricing_settings()
    return JSONResponse(settings.as_dict())
