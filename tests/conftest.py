"""Shared pytest fixtures for the bridge tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from omnibridge.config import (  # noqa: E402
    BridgeSettings,
    DatabaseSettings,
    MessengerSettings,
    WhatsAppSettings,
)
from .helpers import FakeStore  # noqa: E402


@pytest.fixture
def settings() -> BridgeSettings:
    return BridgeSettings(
        database=DatabaseSettings(dsn="dbname=crm user=crm host=localhost"),
        whatsapp=WhatsAppSettings(access_token="wa-token", phone_number_id="PHONE_ID"),
        messenger=MessengerSettings(page_access_token="page-token"),
        graph_api_base="https://graph.example.test/v19.0",
        default_parent_id=7,
    )


@pytest.fixture
def fake_store(monkeypatch) -> FakeStore:
    """In-memory store patched over the repositories and get_conn."""
    store = FakeStore()
    store.install(monkeypatch)
    return store
