from pathlib import Path

TOTP_STEP_SECONDS = 15
TOTP_WINDOW_MS = TOTP_STEP_SECONDS * 1000
TOTP_DIGITS = 6

TOKEN_DELIMITER = "::"

# Refresh
POLL_INTERVAL_SECONDS = 0.5

# Storage
TICKET_STORAGE_KEY = "ticket"
DEFAULT_TICKET_STORE_PATH = Path.home() / ".ticketgimp" / "store.json"

# Ticket descriptor json keys
BEARER_ID_FIELD = "t"
CUSTOMER_KEY_FIELD = "ck"
EVENT_KEY_FIELD = "ek"
