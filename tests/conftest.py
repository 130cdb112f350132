import os
import threading
import pytest
from typing import Generator, Dict, Any, List, Optional, Tuple
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

# Pas de Redis en tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from backend import config
from backend.app import app as fastapi_app
from backend.auth.service import create_admin_token
from backend.orders.models import (
    OrderConflict,
    OrderNotFound,
    STATUS_CANCELED,
    STATUS_PAID,
    STATUS_PENDING,
    TransitionResult,
)

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid or nodeid.startswith("unit/"):
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid or nodeid.startswith("integration/"):
            item.add_marker(pytest.mark.integration)


class FakeOrderStore:
    """
    Double en mémoire de backend.orders.repository.
    Les mises à jour conditionnelles sont atomiques (verrou) comme l'UPDATE ... WHERE côté PostgreSQL.
    """

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.lock = threading.Lock()

    # --- contrat du repository ---
    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self.lock:
            order_id = str(data["id"])
            if order_id not in self.rows:
                row = {
                    "status": STATUS_PENDING,
                    "order_status": "pending",
                    "payment_provider": None,
                    "provider_attempt_ref": None,
                    "provider_capture_ref": None,
                    "notes": None,
                    "cost": None,
                    "created_at": "2026-01-01T00:00:00+00:00",
                    "paid_at": None,
                    "canceled_at": None,
                }
                row.update(data)
                row["total_usd"] = float(row["total_usd"]) if row.get("total_usd") is not None else None
                self.rows[order_id] = row
            return dict(self.rows[order_id])

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(str(order_id))
        return dict(row) if row else None

    def find_by_provider_attempt_ref(self, ref: str) -> Optional[Dict[str, Any]]:
        for row in self.rows.values():
            if ref and row.get("provider_attempt_ref") == ref:
                return dict(row)
        return None

    def attach_provider_attempt(self, order_id: str, provider: str, ref: str) -> Dict[str, Any]:
        with self.lock:
            row = self.rows.get(str(order_id))
            if row is None:
                raise OrderNotFound("Commande introuvable", order_id=order_id)
            taken = any(r.get("provider_attempt_ref") == ref for r in self.rows.values())
            if row["provider_attempt_ref"] or row["status"] != STATUS_PENDING or taken:
                raise OrderConflict("Une tentative de paiement existe déjà", order_id=order_id)
            row["payment_provider"] = provider
            row["provider_attempt_ref"] = ref
            return dict(row)

    def _transition(self, order_id: str, target: str, changes: Dict[str, Any]) -> TransitionResult:
        with self.lock:
            row = self.rows.get(str(order_id))
            if row is None:
                raise OrderNotFound("Commande introuvable", order_id=order_id)
            if row["status"] == STATUS_PENDING:
                row.update(changes)
                return TransitionResult.APPLIED
            if row["status"] == target:
                return TransitionResult.ALREADY_APPLIED
            raise OrderConflict(f"Commande déjà {row['status']}", order_id=order_id)

    def transition_to_paid(self, order_id: str, capture_ref: Optional[str]) -> TransitionResult:
        return self._transition(order_id, STATUS_PAID, {
            "status": STATUS_PAID, "provider_capture_ref": capture_ref, "paid_at": "2026-01-01T00:05:00+00:00",
        })

    def transition_to_canceled(self, order_id: str) -> TransitionResult:
        return self._transition(order_id, STATUS_CANCELED, {
            "status": STATUS_CANCELED, "canceled_at": "2026-01-01T00:05:00+00:00",
        })

    def list_orders(self, limit: int = 100) -> List[dict]:
        return [dict(r) for r in list(self.rows.values())[:limit]]

    def update_admin_fields(self, order_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self.rows.get(str(order_id))
        if row is None:
            return None
        row.update({k: v for k, v in data.items() if k in ("order_status", "notes", "cost")})
        return dict(row)

    def delete_order(self, order_id: str) -> bool:
        return self.rows.pop(str(order_id), None) is not None

    def count_orders_by_status(self) -> Dict[str, int]:
        counts = {"total": 0, STATUS_PENDING: 0, STATUS_PAID: 0, STATUS_CANCELED: 0}
        for row in self.rows.values():
            counts["total"] += 1
            counts[row["status"]] += 1
        return counts

    # --- aides de test ---
    def seed(self, order_id: str, total_usd: float = 19.99, provider: Optional[str] = None,
             ref: Optional[str] = None, **extra) -> Dict[str, Any]:
        self.create_order({
            "id": order_id,
            "email": "buyer@example.com",
            "message": "Happy birthday Ama!",
            "photo_url": "https://cdn.example.com/photo.jpg",
            "music_option": "default",
            "delivery_method": "standard",
            "total_usd": total_usd,
            **extra,
        })
        if ref:
            self.attach_provider_attempt(order_id, provider or "stripe", ref)
        return self.get_order(order_id)

    def install(self, monkeypatch) -> "FakeOrderStore":
        import backend.orders.repository as repo
        for name in (
            "create_order", "get_order", "find_by_provider_attempt_ref", "attach_provider_attempt",
            "transition_to_paid", "transition_to_canceled", "list_orders", "update_admin_fields",
            "delete_order", "count_orders_by_status",
        ):
            monkeypatch.setattr(repo, name, getattr(self, name))
        return self


class NotificationRecorder:
    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.lock = threading.Lock()

    def __call__(self, order: Dict[str, Any], event: str) -> None:
        with self.lock:
            self.calls.append((event, dict(order)))

    def events(self) -> List[str]:
        return [event for event, _ in self.calls]


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def store(monkeypatch) -> FakeOrderStore:
    return FakeOrderStore().install(monkeypatch)

@pytest.fixture
def notified(monkeypatch) -> NotificationRecorder:
    """Remplace le fan-out réel (email + Discord) par un enregistreur."""
    recorder = NotificationRecorder()
    monkeypatch.setattr("backend.notifications.service.fan_out", recorder)
    return recorder

# Prix par défaut de la table settings (aucun accès Supabase)
@pytest.fixture(autouse=True)
def pricing_settings(monkeypatch) -> Dict[str, str]:
    values = {"price_base": "19.99", "price_custom_song": "9.99", "price_express_delivery": "7.99"}
    monkeypatch.setattr(
        "backend.pricing.repository.fetch_settings",
        lambda keys: {k: v for k, v in values.items() if k in set(keys)},
    )
    return values

# Aucun test ne doit joindre Supabase, Stripe, PayPal, Resend ou Discord
@pytest.fixture(scope="function", autouse=True)
def mock_external_services(monkeypatch):
    monkeypatch.setattr("backend.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_test_dummy")
    monkeypatch.setattr(config, "PAYPAL_CLIENT_ID", "paypal-client")
    monkeypatch.setattr(config, "PAYPAL_CLIENT_SECRET", "paypal-secret")
    monkeypatch.setattr(config, "RESEND_API_KEY", "")
    monkeypatch.setattr(config, "DISCORD_WEBHOOK_URL", "")
    monkeypatch.setattr(config, "SITE_URL", "https://shop.example.com")
    monkeypatch.setattr(config, "BASE_URL", "https://api.example.com")

@pytest.fixture
def admin_credentials(monkeypatch) -> Dict[str, str]:
    # hash bcrypt de "s3cret-pass" (coût 4, suffisant pour les tests)
    import bcrypt
    password = "s3cret-pass"
    monkeypatch.setattr(config, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(config, "ADMIN_PASSWORD_HASH", bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=4)).decode())
    monkeypatch.setattr(config, "ADMIN_TOKEN_SECRET", "test-token-secret-0123456789abcdef0123")
    return {"username": "admin", "password": password}

@pytest.fixture
def admin_headers(admin_credentials) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token('admin')}"}
