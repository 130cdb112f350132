"""
Contrat commun des prestataires de paiement (Stripe, PayPal).

Le moteur de réconciliation ne connaît que Confirmation: chaque adaptateur
normalise ses propres signaux (webhook, retour navigateur, interrogation directe)
vers le tri-état Outcome.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class Confirmation:
    provider_attempt_ref: str
    outcome: Outcome
    capture_ref: Optional[str] = None


@dataclass(frozen=True)
class ProviderAttempt:
    provider_attempt_ref: str
    client_handle: Dict[str, Any]


class WebhookSignatureError(Exception):
    """Signature absente/invalide ou secret non configuré: l'événement n'atteint jamais le moteur."""

    status_code = 400


class ProviderError(Exception):
    """Échec d'un appel au prestataire (SDK Stripe, API REST PayPal)."""

    status_code = 502

    def __init__(self, message: str, provider: str = "", issue: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.issue = issue


class UnknownProvider(ValueError):
    status_code = 400


class PaymentProviderAdapter(ABC):
    name: str = ""

    @abstractmethod
    def open_attempt(self, order: Mapping[str, Any], *, return_url: str, cancel_url: str) -> ProviderAttempt:
        """Ouvre une session/un ordre chez le prestataire pour order['total_usd'] (USD)."""

    @abstractmethod
    def confirm(self, signal: Mapping[str, Any]) -> Confirmation:
        """Normalise un signal de retour navigateur (peut déclencher la capture)."""

    @abstractmethod
    def fetch_status(self, provider_attempt_ref: str) -> Confirmation:
        """Lecture directe de l'état, sans effet de bord chez le prestataire."""

    @abstractmethod
    def resume_attempt(self, provider_attempt_ref: str) -> Optional[ProviderAttempt]:
        """Handle client d'une tentative encore ouverte (re-soumission), None si elle n'est plus payable."""

    def parse_webhook(self, payload: bytes, headers: Mapping[str, str]) -> Optional[Confirmation]:
        raise WebhookSignatureError(f"Webhook non supporté pour {self.name}")
