"""
Keeps the stored ticket, its current token and the rendered barcode in step.

The ticket is loaded from the store once at startup and written back whenever
it changes. The token is recomputed on every new time window and whenever the
ticket changes, and the barcode is only rendered again when the result changes.
"""

import threading
from typing import Callable, Protocol

from ticketgimp import constants as tcst
from ticketgimp.logging_utils import get_logger
from ticketgimp.security.tickets.models import TokenResult
from ticketgimp.security.tickets.operations import compute_token_result
from ticketgimp.security.tickets.scheduler import RefreshScheduler
from ticketgimp.storage.ticket_store import TicketStore
from ticketgimp.utils import unix_now_ms

logger = get_logger(__name__)


class BarcodeEncoder(Protocol):
    def encode(self, text: str) -> bytes: ...


RenderCallback = Callable[[TokenResult, bytes | None], None]


class TicketDisplay:
    def __init__(
        self,
        store: TicketStore,
        encoder: BarcodeEncoder | None = None,
        on_render: RenderCallback | None = None,
        clock: Callable[[], int] = unix_now_ms,
        poll_interval: float = tcst.POLL_INTERVAL_SECONDS,
    ) -> None:
        self.store = store
        self.encoder = encoder
        self.on_render = on_render
        self.clock = clock
        self.ticket: str | None = None
        self.result: TokenResult | None = None
        self.barcode: bytes | None = None
        self._lock = threading.RLock()
        self.scheduler = RefreshScheduler(self.refresh, clock=clock, poll_interval=poll_interval)

    @property
    def token(self) -> str | None:
        return self.result.token if self.result is not None else None

    def load(self) -> str | None:
        ticket = self.store.get(tcst.TICKET_STORAGE_KEY)
        with self._lock:
            self.ticket = ticket
        if ticket:
            logger.info("Loaded stored ticket")
        else:
            logger.info("No ticket stored yet")
        return ticket

    def save(self) -> bool:
        with self._lock:
            ticket = self.ticket
        return self.store.set(tcst.TICKET_STORAGE_KEY, ticket or "")

    def update_ticket(self, ticket: str) -> TokenResult:
        """
        Replaces the ticket, persists it and recomputes the token straight away.

        A failed save is logged by the store and does not stop the new ticket
        from being displayed.
        """
        with self._lock:
            self.ticket = ticket
            if not self.save():
                logger.warning("Ticket could not be saved, it will be lost on restart")
            return self.refresh(self.clock())

    def refresh(self, now_ms: int) -> TokenResult:
        with self._lock:
            result = compute_token_result(self.ticket, now_ms)
            previous = self.result
            if previous is not None and (previous.status, previous.token, previous.error) == (
                result.status,
                result.token,
                result.error,
            ):
                self.result = result
                return result

            # Stored only once rendered, a failed render is retried on the next refresh
            barcode = None
            if result.token is not None and self.encoder is not None:
                barcode = self.encoder.encode(result.token)
            if self.on_render is not None:
                self.on_render(result, barcode)
            self.result = result
            self.barcode = barcode
            return result

    def start(self) -> None:
        if self.ticket is None:
            self.load()
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()

    def __enter__(self) -> "TicketDisplay":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
