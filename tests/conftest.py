"""
Pytest configuration file.
"""
import base64
import json

import pytest

from ticketgimp.core.configuration import factory_config
from ticketgimp.security.tickets.models import TicketDescriptor
from ticketgimp.storage.ticket_store import InMemoryTicketStore

# RFC 4226 appendix D test secret
RFC_SECRET = b"12345678901234567890"

# Start of a time window: 1_700_000_010_000 == 15_000 * 113_333_334
WINDOW_START_MS = 1_700_000_010_000


def make_raw_ticket(payload) -> str:
    """Base64-encode a json payload the way tickets are distributed."""
    return base64.b64encode(json.dumps(payload).encode()).decode()


class SimulatedClock:
    """Clock that moves forward by `step_ms` every time it is read."""

    def __init__(self, start_ms: int, step_ms: int = 500):
        self.now_ms = start_ms
        self.step_ms = step_ms

    def __call__(self) -> int:
        now_ms = self.now_ms
        self.now_ms += self.step_ms
        return now_ms


@pytest.fixture(autouse=True)
def clear_config_cache():
    factory_config.cache_clear()
    yield
    factory_config.cache_clear()


@pytest.fixture
def sample_payload():
    return {"t": "B123", "ck": "deadbeef", "ek": "cafef00d"}


@pytest.fixture
def sample_ticket(sample_payload):
    return make_raw_ticket(sample_payload)


@pytest.fixture
def sample_descriptor():
    return TicketDescriptor(
        bearer_id="B123",
        customer_key=bytes.fromhex("deadbeef"),
        event_key=bytes.fromhex("cafef00d"),
    )


@pytest.fixture
def memory_store():
    return InMemoryTicketStore()


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    path = tmp_path / "store.json"
    monkeypatch.setenv("TICKET_STORE_PATH", str(path))
    return path
