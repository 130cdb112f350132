# module backend.orders.models
"""Modèle des commandes.
- Constantes de statut (paiement vs traitement back-office).
- Résultat d'une transition atomique (TransitionResult).
- Erreurs métier mappées en réponses HTTP par backend.app_setup.exceptions.
- Schéma d'entrée du formulaire de commande (pydantic).
"""
from enum import Enum
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator

# Statut de paiement (seul le moteur de réconciliation le modifie)
STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_CANCELED = "canceled"
TERMINAL_STATUSES = (STATUS_PAID, STATUS_CANCELED)

# Statut de traitement (seul le back-office le modifie)
ORDER_STATUSES = ("pending", "processing", "completed", "cancelled")

PROVIDERS = ("stripe", "paypal")

# Données métier immuables comparées lors d'une re-soumission du même id
BUSINESS_FIELDS = (
    "email",
    "message",
    "gift_note",
    "photo_url",
    "music_option",
    "music_link",
    "music_file_url",
    "delivery_method",
)


class TransitionResult(str, Enum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"


class OrderError(Exception):
    """Base des erreurs métier du domaine commandes."""

    status_code = 400

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.order_id = order_id


class OrderValidationError(OrderError):
    status_code = 400


class OrderNotFound(OrderError):
    status_code = 404


class OrderConflict(OrderError):
    status_code = 409


class OrderIntakeRequest(BaseModel):
    """
    Corps de POST /api/v1/orders.
    - Accepte les noms snake_case et camelCase du formulaire (orderId, photoUrl, ...).
    - has_custom_song / is_express: anciens booléens, utilisés si music_option / delivery_method sont absents.
    - total_price: accepté pour compatibilité mais jamais utilisé comme montant facturé.
    """
    id: UUID = Field(validation_alias=AliasChoices("id", "orderId", "order_id"))
    email: EmailStr
    message: str = Field(min_length=1, max_length=5000)
    gift_note: Optional[str] = Field(default=None, max_length=2000, validation_alias=AliasChoices("gift_note", "giftNote"))
    photo_url: str = Field(min_length=1, validation_alias=AliasChoices("photo_url", "photoUrl"))
    music_option: Optional[Literal["default", "custom"]] = Field(default=None, validation_alias=AliasChoices("music_option", "musicOption"))
    music_link: Optional[str] = Field(default=None, validation_alias=AliasChoices("music_link", "musicLink"))
    music_file_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("music_file_url", "musicFileUrl"))
    delivery_method: Optional[Literal["standard", "express"]] = Field(default=None, validation_alias=AliasChoices("delivery_method", "deliveryMethod"))
    has_custom_song: bool = Field(default=False, validation_alias=AliasChoices("has_custom_song", "hasCustomSong"))
    is_express: bool = Field(default=False, validation_alias=AliasChoices("is_express", "isExpress"))
    payment_method: Literal["stripe", "paypal"] = Field(default="stripe", validation_alias=AliasChoices("payment_method", "paymentMethod", "provider"))
    total_price: Optional[float] = Field(default=None, validation_alias=AliasChoices("total_price", "totalPrice"))

    @field_validator("message", "photo_url")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ne doit pas être vide")
        return v.strip()

    @field_validator("gift_note", "music_link", "music_file_url")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None

    def resolved_options(self) -> Dict[str, str]:
        return {
            "music_option": self.music_option or ("custom" if self.has_custom_song else "default"),
            "delivery_method": self.delivery_method or ("express" if self.is_express else "standard"),
        }

    def to_order_data(self) -> Dict[str, Any]:
        """Ligne 'orders' sans montant (le montant est ajouté par le service après résolution du prix)."""
        options = self.resolved_options()
        return {
            "id": str(self.id),
            "email": str(self.email),
            "message": self.message,
            "gift_note": self.gift_note,
            "photo_url": self.photo_url,
            "music_option": options["music_option"],
            "music_link": self.music_link,
            "music_file_url": self.music_file_url,
            "delivery_method": options["delivery_method"],
        }


def public_view(order: Dict[str, Any]) -> Dict[str, Any]:
    """Sous-ensemble d'une commande exposable au navigateur de l'acheteur."""
    return {
        "id": str(order.get("id") or ""),
        "status": order.get("status"),
        "total_usd": order.get("total_usd"),
        "payment_provider": order.get("payment_provider"),
    }
