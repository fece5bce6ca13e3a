"""
Shared fixtures for the SafarSuraksha test suite
"""

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient

from safar_suraksha.config import Settings
from safar_suraksha.core.emergency_alert import AlertBroadcaster
from safar_suraksha.core.geofencing import ZoneRegistry
from safar_suraksha.core.ledger import LedgerRegistrar
from safar_suraksha.main import create_app


TAJ_MAHAL = (27.1751, 78.0421)


@pytest.fixture
def zone_entries():
    """Zone catalog as an operator would write it, including a broken entry"""
    return [
        {
            "id": "zone1",
            "name": "Restricted Forest Area",
            "center": {"latitude": TAJ_MAHAL[0], "longitude": TAJ_MAHAL[1]},
            "radius": 1000,
        },
        {
            "id": "zone2",
            "name": "High-Risk Border Zone",
            "center": {"latitude": 26.8467, "longitude": 80.9462},
            "radius": 2000,
        },
        {},
    ]


@pytest.fixture
def zone_registry(zone_entries):
    return ZoneRegistry.from_entries(zone_entries)


def make_ledger_client(
    transaction_ref="0xfeedbeef",
    fee_units=21000,
    fee_rate=1000,
    nonce=5
):
    """Ledger client double with every call succeeding"""
    client = Mock()
    client.account = "0x00000000000000000000000000000000000000aa"
    client.estimate_fee = AsyncMock(return_value=fee_units)
    client.get_fee_rate = AsyncMock(return_value=fee_rate)
    client.get_sequence_number = AsyncMock(return_value=nonce)
    client.submit = AsyncMock(return_value=transaction_ref)
    return client


@pytest.fixture
def ledger_factory():
    return make_ledger_client


@pytest.fixture
def ledger_client():
    return make_ledger_client()


@pytest.fixture
def app_settings():
    return Settings(LEDGER_RPC_URL="", ALERT_WEBHOOK_URL="")


@pytest.fixture
def api_client(app_settings, zone_registry, ledger_client):
    app = create_app(
        app_settings,
        zone_registry=zone_registry,
        broadcaster=AlertBroadcaster(),
        registrar=LedgerRegistrar(ledger_client, fee_multiplier=2.0, timeout=5.0)
    )
    with TestClient(app) as client:
        yield client
