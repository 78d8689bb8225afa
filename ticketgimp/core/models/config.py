from dataclasses import dataclass
from pathlib import Path

from ticketgimp.storage.ticket_store import JsonFileTicketStore


@dataclass
class Config:
    ticket_store: JsonFileTicketStore
    poll_interval: float
    barcode_output_path: Path | None
