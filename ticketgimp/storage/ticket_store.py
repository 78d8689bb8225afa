"""
Key-value stores for the raw ticket text.

Only the ticket text is kept, under `constants.TICKET_STORAGE_KEY`; derived
tokens are never stored.
"""

import json
from pathlib import Path
from typing import Protocol

from ticketgimp.logging_utils import get_logger
from ticketgimp.security.tickets.errors import TicketStoreError

logger = get_logger(__name__)


class TicketStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> bool: ...


class InMemoryTicketStore:
    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> bool:
        self._values[key] = value
        return True


class JsonFileTicketStore:
    """
    Stores values in a single json object on disk.

    A missing file reads as empty. The whole object is rewritten on every `set`.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            with open(self.path, "r") as f:
                raw_values = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise TicketStoreError(f"Failed to read ticket store {self.path}: {str(e)}")

        if not isinstance(raw_values, dict):
            raise TicketStoreError(f"Ticket store {self.path} does not hold a json object")
        return raw_values

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        if value is not None and not isinstance(value, str):
            logger.warning(f"Ignoring non-string value stored under '{key}'")
            return None
        return value

    def set(self, key: str, value: str) -> bool:
        try:
            values = self._load()
        except TicketStoreError as e:
            logger.warning(f"{e}, overwriting it")
            values = {}
        values[key] = value

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(values, f)
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save '{key}' to {self.path}: {str(e)}")
            return False

        logger.info(f"Saved '{key}' to {self.path}")
        return True
