"""
Ticket display composition tests.
"""
import pytest

from ticketgimp import constants as tcst
from ticketgimp.display.ticket_display import TicketDisplay
from ticketgimp.security.tickets.models import TokenStatus
from ticketgimp.storage.ticket_store import InMemoryTicketStore
from tests.conftest import WINDOW_START_MS, SimulatedClock


class FakeEncoder:
    def __init__(self):
        self.encoded: list[str] = []

    def encode(self, text: str) -> bytes:
        self.encoded.append(text)
        return f"barcode:{text}".encode()


class RenderLog:
    def __init__(self):
        self.renders = []

    def __call__(self, result, barcode):
        self.renders.append((result, barcode))


class FailingStore(InMemoryTicketStore):
    def set(self, key: str, value: str) -> bool:
        return False


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def render_log():
    return RenderLog()


@pytest.fixture
def display(memory_store, encoder, render_log):
    return TicketDisplay(
        store=memory_store,
        encoder=encoder,
        on_render=render_log,
        clock=lambda: WINDOW_START_MS + 1_000,
    )


# =============================================================================
# TEST: Load and save
# =============================================================================
class TestLoadSave:
    """Test the stored ticket lifecycle."""

    def test_load_empty_store(self, display):
        """Test that loading from an empty store leaves no ticket."""
        assert display.load() is None
        assert display.ticket is None

    def test_load_stored_ticket(self, display, memory_store, sample_ticket):
        """Test that the stored ticket is loaded at startup."""
        memory_store.set(tcst.TICKET_STORAGE_KEY, sample_ticket)

        assert display.load() == sample_ticket
        assert display.ticket == sample_ticket

    def test_update_ticket_persists(self, display, memory_store, sample_ticket):
        """Test that changing the ticket writes it to the store."""
        display.update_ticket(sample_ticket)

        assert memory_store.get(tcst.TICKET_STORAGE_KEY) == sample_ticket

    def test_update_ticket_survives_failed_save(self, encoder, render_log, sample_ticket):
        """Test that a failed save still shows the new ticket."""
        display = TicketDisplay(store=FailingStore(), encoder=encoder, on_render=render_log, clock=lambda: WINDOW_START_MS)

        result = display.update_ticket(sample_ticket)

        assert result.is_ready


# =============================================================================
# TEST: Rendering
# =============================================================================
class TestRefresh:
    """Test token recomputation and barcode rendering."""

    def test_update_ticket_renders_immediately(self, display, encoder, render_log, sample_ticket):
        """Test that a new ticket is derived and rendered straight away."""
        result = display.update_ticket(sample_ticket)

        assert result.is_ready
        assert result.token.startswith("B123::")
        assert display.token == result.token
        assert encoder.encoded == [result.token]
        assert render_log.renders == [(result, f"barcode:{result.token}".encode())]

    def test_no_ticket_renders_empty(self, display, encoder, render_log):
        """Test that without a ticket nothing is encoded."""
        result = display.refresh(WINDOW_START_MS)

        assert result.status is TokenStatus.NO_TICKET
        assert display.token is None
        assert encoder.encoded == []
        assert render_log.renders == [(result, None)]

    def test_malformed_ticket_is_distinguished(self, display, encoder, render_log):
        """Test that a malformed ticket is reported apart from a missing one."""
        result = display.update_ticket("definitely not a ticket")

        assert result.status is TokenStatus.INVALID_TICKET
        assert result.error
        assert display.barcode is None
        assert encoder.encoded == []

    def test_unchanged_result_is_not_rendered_again(self, display, render_log):
        """Test that the same result twice only renders once."""
        display.refresh(WINDOW_START_MS)
        display.refresh(WINDOW_START_MS + 15_000)

        assert len(render_log.renders) == 1

    def test_new_window_renders_new_token(self, display, encoder, sample_ticket):
        """Test that each window produces a freshly encoded token."""
        display.update_ticket(sample_ticket)
        first = display.token

        display.refresh(WINDOW_START_MS + 15_000)

        assert display.token != first
        assert len(encoder.encoded) == 2

    def test_fixing_ticket_replaces_error(self, display, sample_ticket):
        """Test that entering a good ticket after a bad one recovers."""
        display.update_ticket("garbage")
        result = display.update_ticket(sample_ticket)

        assert result.is_ready
        assert display.barcode is not None

    def test_clearing_ticket_removes_barcode(self, display, sample_ticket):
        """Test that clearing the ticket clears the barcode."""
        display.update_ticket(sample_ticket)
        result = display.update_ticket("")

        assert result.status is TokenStatus.NO_TICKET
        assert display.barcode is None

    def test_works_without_encoder(self, memory_store, sample_ticket):
        """Test that the display can run without rendering barcodes."""
        display = TicketDisplay(store=memory_store, clock=lambda: WINDOW_START_MS)

        assert display.update_ticket(sample_ticket).is_ready
        assert display.barcode is None


# =============================================================================
# TEST: Scheduled refresh
# =============================================================================
class TestScheduledRefresh:
    """Test the display driven by its scheduler."""

    def test_scheduler_refreshes_once_per_window(self, memory_store, encoder, sample_ticket):
        """Test that simulated 500ms polls recompute once per window."""
        memory_store.set(tcst.TICKET_STORAGE_KEY, sample_ticket)
        display = TicketDisplay(store=memory_store, encoder=encoder, clock=SimulatedClock(WINDOW_START_MS))
        display.load()

        for _ in range(90):
            display.scheduler.sample()

        assert len(encoder.encoded) == 3
        assert [int(token.split("::")[3]) for token in encoder.encoded] == [1_700_000_010, 1_700_000_025, 1_700_000_040]

    def test_start_loads_and_stop_disposes(self, memory_store, sample_ticket, render_log):
        """Test that start loads the stored ticket and stop tears the scheduler down."""
        memory_store.set(tcst.TICKET_STORAGE_KEY, sample_ticket)
        display = TicketDisplay(store=memory_store, on_render=render_log, poll_interval=0.001)

        with display:
            display.scheduler.stop_event.wait(0.1)

        assert display.ticket == sample_ticket
        assert display.scheduler.is_disposed
        assert render_log.renders
        assert render_log.renders[0][0].is_ready


class FlakyEncoder(FakeEncoder):
    """Encoder whose first call fails."""

    def encode(self, text: str) -> bytes:
        if not self.encoded:
            self.encoded.append(text)
            raise RuntimeError("encoder unavailable")
        return super().encode(text)


# =============================================================================
# TEST: Render failures
# =============================================================================
class TestRenderFailure:
    """Test that a failed render does not leave the display stale."""

    def test_failed_encode_is_retried(self, memory_store, render_log, sample_ticket):
        """Test that the barcode is rendered on the refresh after an encoder failure."""
        memory_store.set(tcst.TICKET_STORAGE_KEY, sample_ticket)
        display = TicketDisplay(store=memory_store, encoder=FlakyEncoder(), on_render=render_log)
        display.load()

        with pytest.raises(RuntimeError):
            display.refresh(WINDOW_START_MS)
        assert display.result is None
        assert render_log.renders == []

        result = display.refresh(WINDOW_START_MS)

        assert result.is_ready
        assert display.result == result
        assert display.barcode == f"barcode:{result.token}".encode()
        assert render_log.renders == [(result, display.barcode)]

    def test_failed_render_callback_is_retried(self, memory_store, encoder, sample_ticket):
        """Test that a render callback failure keeps the previous result."""
        calls = []

        def on_render(result, barcode):
            calls.append(result)
            if len(calls) == 1:
                raise RuntimeError("screen unavailable")

        memory_store.set(tcst.TICKET_STORAGE_KEY, sample_ticket)
        display = TicketDisplay(store=memory_store, encoder=encoder, on_render=on_render)
        display.load()

        with pytest.raises(RuntimeError):
            display.refresh(WINDOW_START_MS)
        assert display.barcode is None

        display.refresh(WINDOW_START_MS)

        assert len(calls) == 2
        assert display.result.is_ready
        assert display.barcode is not None
