"""
Moteur de réconciliation: applique une confirmation de paiement sur la commande, exactement une fois.

Webhook, retour navigateur et rafraîchissement manuel aboutissent tous à reconcile().
Aucun contrôle préalable du statut: le moteur ne décide qu'à partir du résultat
atomique de la mise à jour conditionnelle du repository. Les notifications ne partent
que si CET appel a effectué la transition.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
import logging

from backend.notifications import service as notifications
from backend.orders import repository as orders_repo
from backend.orders.models import (
    OrderConflict,
    OrderNotFound,
    STATUS_CANCELED,
    STATUS_PAID,
    TransitionResult,
)
from backend.payments.base import Confirmation, Outcome

logger = logging.getLogger(__name__)

Notifier = Callable[[Dict[str, Any], str], None]


class Transition(str, Enum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    NOOP = "noop"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class ReconcileResult:
    order_id: str
    outcome: Outcome
    transition: Transition


def _default_notifier(order: Dict[str, Any], event: str) -> None:
    notifications.fan_out(order, event)


# module backend.reconciliation.service
def reconcile(
    provider_attempt_ref: str,
    outcome: Outcome,
    capture_ref: Optional[str] = None,
    *,
    notify: Optional[Notifier] = None,
) -> ReconcileResult:
    """
    - Référence inconnue: OrderNotFound (aucun effet de bord).
    - PENDING: NOOP.
    - SUCCEEDED / FAILED: transition conditionnelle pending -> paid / canceled;
      APPLIED => notification; ALREADY_APPLIED => rien; état terminal opposé => CONFLICT.
    """
    notify = notify or _default_notifier
    outcome = Outcome(outcome)

    order = orders_repo.find_by_provider_attempt_ref(provider_attempt_ref)
    if order is None:
        logger.warning("reconcile unknown attempt ref=%s outcome=%s", provider_attempt_ref, outcome.value)
        raise OrderNotFound(f"Aucune commande pour la tentative {provider_attempt_ref}")
    order_id = str(order.get("id"))

    if outcome == Outcome.PENDING:
        logger.info("reconcile noop order_id=%s ref=%s (pending)", order_id, provider_attempt_ref)
        return ReconcileResult(order_id, outcome, Transition.NOOP)

    try:
        if outcome == Outcome.SUCCEEDED:
            result = orders_repo.transition_to_paid(order_id, capture_ref)
            event, changes = STATUS_PAID, {"status": STATUS_PAID, "provider_capture_ref": capture_ref}
        else:
            result = orders_repo.transition_to_canceled(order_id)
            event, changes = STATUS_CANCELED, {"status": STATUS_CANCELED}
    except OrderConflict:
        logger.error("reconcile conflict order_id=%s ref=%s outcome=%s: dropped",
                     order_id, provider_attempt_ref, outcome.value)
        return ReconcileResult(order_id, outcome, Transition.CONFLICT)

    if result != TransitionResult.APPLIED:
        logger.info("reconcile already applied order_id=%s outcome=%s", order_id, outcome.value)
        return ReconcileResult(order_id, outcome, Transition.ALREADY_APPLIED)

    logger.info("reconcile applied order_id=%s outcome=%s", order_id, outcome.value)
    try:
        notify({**order, **changes}, event)
    except Exception:
        # La transition est déjà persistée: un échec de notification ne l'annule jamais
        logger.exception("reconcile notify failed order_id=%s event=%s", order_id, event)
    return ReconcileResult(order_id, outcome, Transition.APPLIED)


def apply_confirmation(confirmation: Confirmation, *, notify: Optional[Notifier] = None) -> ReconcileResult:
    return reconcile(
        confirmation.provider_attempt_ref,
        confirmation.outcome,
        confirmation.capture_ref,
        notify=notify,
    )
