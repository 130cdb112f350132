"""
Module 'payments' (feature-first): point d'entrée public.
Réunit le contrat prestataire, les adaptateurs Stripe/PayPal et leurs clients.
"""

from .base import (
    Confirmation,
    Outcome,
    PaymentProviderAdapter,
    ProviderAttempt,
    ProviderError,
    UnknownProvider,
    WebhookSignatureError,
)
from .adapters import PayPalAdapter, StripeAdapter, get_adapter

__all__ = [
    # contrat
    "Confirmation",
    "Outcome",
    "PaymentProviderAdapter",
    "ProviderAttempt",
    # erreurs
    "ProviderError",
    "UnknownProvider",
    "WebhookSignatureError",
    # adaptateurs
    "StripeAdapter",
    "PayPalAdapter",
    "get_adapter",
]
