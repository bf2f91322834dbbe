"""
Test configuration and fixtures for Painel ML
"""
import os

# Must be set before painel_ml modules read them at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["ENVIRONMENT"] = "testing"
os.environ["QUEUE_BACKEND"] = "memory"
os.environ["ENCRYPTION_MASTER_KEY"] = "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE="
os.environ.pop("ENCRYPTION_SECONDARY_KEY", None)
os.environ.pop("SENTRY_DSN", None)

from datetime import datetime, timedelta
from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from painel_ml.api.main import app
from painel_ml.database.connection import get_db
from painel_ml.database.models import Account, Base, Order, Shipment
from painel_ml.queue import get_queue, reset_queue
from painel_ml.security.encryption import reset_encryptor
from painel_ml.services.accounts import AccountsService
from painel_ml.utils.config import reload_config


# =============================================================================
# Test Database Setup
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite shared by every connection of one test"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# Environment Setup
# =============================================================================

@pytest.fixture(autouse=True)
def reset_globals():
    """Fresh config, encryptor and queue for every test"""
    reload_config()
    reset_encryptor()
    reset_queue()
    yield
    reset_queue()
    reset_encryptor()


@pytest.fixture
def queue():
    return get_queue()


# =============================================================================
# FastAPI Test Client
# =============================================================================

@pytest.fixture(scope="function")
def client(db_session) -> TestClient:
    """FastAPI test client bound to the test session"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def token_payload():
    return {
        "access_token": "APP_USR-access-1",
        "refresh_token": "TG-refresh-1",
        "token_type": "Bearer",
        "scope": "offline_access read write",
        "expires_in": 21600,
        "user_id": 123456789,
    }


@pytest.fixture
def account(db_session, token_payload) -> Account:
    """Connected seller with encrypted tokens"""
    return AccountsService(db_session).save_account_with_tokens(
        {"seller_id": "123456789", "nickname": "LOJA_TESTE", "site_id": "MLB"},
        token_payload,
    )


@pytest.fixture
def other_account(db_session) -> Account:
    """Seller without tokens"""
    account = Account(seller_id="987654321", nickname="OUTRA_LOJA", site_id="MLB")
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def make_order(db_session, account):
    def _make(meli_order_id: str, account_id=None, **values) -> Order:
        defaults = {
            "status": "paid",
            "total_amount": 100.0,
            "date_created": datetime.utcnow() - timedelta(days=1),
            "item_id": "MLB100",
            "item_title": "Produto Teste",
        }
        defaults.update(values)
        order = Order(account_id=account_id or account.id, meli_order_id=meli_order_id, **defaults)
        db_session.add(order)
        db_session.commit()
        return order
    return _make


@pytest.fixture
def make_shipment(db_session, account):
    def _make(meli_shipment_id: str, **values) -> Shipment:
        defaults = {"status": "ready_to_ship", "mode": "me2"}
        defaults.update(values)
        shipment = Shipment(account_id=account.id, meli_shipment_id=meli_shipment_id, **defaults)
        db_session.add(shipment)
        db_session.commit()
        return shipment
    return _make


# =============================================================================
# Mock External Services
# =============================================================================

@pytest.fixture
def mock_meli_client():
    """MercadoLibre client stand-in for service tests"""
    client = MagicMock()
    return client


@pytest.fixture
def fake_cache():
    """Dict-backed replacement for the Redis OAuth state store"""
    store = {}
    cache = MagicMock()

    def _set(namespace, key, value, ttl=None):
        store[(namespace, key)] = value
        return True

    cache.set.side_effect = _set
    cache.get.side_effect = lambda namespace, key: store.get((namespace, key))
    cache.pop.side_effect = lambda namespace, key: store.pop((namespace, key), None)
    cache.store = store
    return cache
