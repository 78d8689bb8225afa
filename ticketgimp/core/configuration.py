import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from ticketgimp import constants as tcst
from ticketgimp.core.models.config import Config
from ticketgimp.logging_utils import get_logger
from ticketgimp.storage.ticket_store import JsonFileTicketStore

logger = get_logger(__name__)

load_dotenv()


@lru_cache
def factory_config() -> Config:
    ticket_store_path = Path(os.getenv("TICKET_STORE_PATH", str(tcst.DEFAULT_TICKET_STORE_PATH))).expanduser()
    poll_interval = float(os.getenv("POLL_INTERVAL_SECONDS", tcst.POLL_INTERVAL_SECONDS))
    barcode_output_path = os.getenv("BARCODE_OUTPUT_PATH")

    assert 0 < poll_interval < tcst.TOTP_STEP_SECONDS / 2, "POLL_INTERVAL_SECONDS must be under half the TOTP step"

    logger.debug(f"Using ticket store at {ticket_store_path}")
    return Config(
        ticket_store=JsonFileTicketStore(ticket_store_path),
        poll_interval=poll_interval,
        barcode_output_path=Path(barcode_output_path).expanduser() if barcode_output_path else None,
    )
