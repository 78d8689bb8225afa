import base64
import binascii
import json
from typing import Any

from cryptography.hazmat.primitives.hashes import SHA1
from cryptography.hazmat.primitives.twofactor.totp import TOTP
from pydantic import ValidationError

from ticketgimp import constants as tcst
from ticketgimp.logging_utils import get_logger
from ticketgimp.security.tickets.errors import DecodeError, DerivationError, TicketError
from ticketgimp.security.tickets.models import TicketDescriptor, TokenResult, TokenStatus

logger = get_logger(__name__)


def _b64decode(raw: str) -> bytes:
  padded = raw + "=" * (-len(raw) % 4)
  try:
    return base64.b64decode(padded, validate=True)
  except (binascii.Error, ValueError) as e:
    raise DecodeError(f"invalid base64 ({e})") from e

def _required_str(payload: dict[str, Any], field: str) -> str:
  if field not in payload:
    raise DecodeError(f"missing field '{field}'")
  value = payload[field]
  if not isinstance(value, str):
    raise DecodeError(f"field '{field}' must be a string, got {type(value).__name__}")
  return value

def _unhex(payload: dict[str, Any], field: str) -> bytes:
  value = _required_str(payload, field)
  try:
    return binascii.unhexlify(value)
  except (binascii.Error, ValueError) as e:
    raise DecodeError(f"field '{field}' is not valid hex ({e})") from e

def decode_ticket(raw: str) -> TicketDescriptor:
  """
  Decodes a raw ticket into its descriptor.

  The raw ticket is base64 of a JSON object holding the bearer id (`t`) and the
  hex encoded customer (`ck`) and event (`ek`) keys. Surrounding whitespace is
  ignored and missing base64 padding is tolerated. The bearer id is kept
  verbatim, except that ids containing a colon are rejected since the token
  fields are colon delimited.

  Args:
      raw (str): The ticket text as entered by the user.

  Returns:
      TicketDescriptor: The bearer id and both decoded secrets.

  Raises:
      DecodeError: If the ticket is not base64, not a JSON object, or any field is
      missing or not representable in its encoding.
  """
  decoded = _b64decode(raw.strip())
  try:
    payload = json.loads(decoded)
  except ValueError as e:
    raise DecodeError(f"invalid json ({e})") from e

  if not isinstance(payload, dict):
    raise DecodeError(f"expected a json object, got {type(payload).__name__}")

  bearer_id = _required_str(payload, tcst.BEARER_ID_FIELD)
  customer_key = _unhex(payload, tcst.CUSTOMER_KEY_FIELD)
  event_key = _unhex(payload, tcst.EVENT_KEY_FIELD)

  try:
    return TicketDescriptor(bearer_id=bearer_id, customer_key=customer_key, event_key=event_key)
  except ValidationError as e:
    raise DecodeError(str(e)) from e

def encode_ticket(descriptor: TicketDescriptor) -> str:
  """
  Encodes a descriptor into the raw ticket form accepted by `decode_ticket`.
  """
  payload = {
    tcst.BEARER_ID_FIELD: descriptor.bearer_id,
    tcst.CUSTOMER_KEY_FIELD: descriptor.customer_key.hex(),
    tcst.EVENT_KEY_FIELD: descriptor.event_key.hex(),
  }
  body = json.dumps(payload, separators=(",", ":"))
  return base64.b64encode(body.encode()).decode()

def time_window(now_ms: int) -> int:
  return now_ms // tcst.TOTP_WINDOW_MS

def generate_totp(key: bytes, now_ms: int, key_name: str = "key") -> str:
  """
  Generates the RFC 6238 code for `key` at `now_ms`.

  Uses the conventional six digits and HMAC-SHA1 with a 15 second step, so the
  counter is the time window of `now_ms`. Short keys are accepted.

  Raises:
      DerivationError: If the key is empty or the OTP primitive rejects it.
  """
  if len(key) == 0:
    raise DerivationError(key_name, "secret is empty")
  try:
    totp = TOTP(key, tcst.TOTP_DIGITS, SHA1(), tcst.TOTP_STEP_SECONDS, enforce_key_length=False)
    # Whole seconds share the window of now_ms, the step being a whole number of seconds
    return totp.generate(now_ms // 1000).decode()
  except (TypeError, ValueError) as e:
    raise DerivationError(key_name, str(e)) from e

def derive_signed_token(descriptor: TicketDescriptor, now_ms: int) -> str:
  """
  Derives the signed token for a descriptor at a point in time.

  Args:
      descriptor (TicketDescriptor): The decoded ticket.
      now_ms (int): Unix time in milliseconds.

  Returns:
      str: `bearerId::eventCode::customerCode::epochSeconds`.

  Raises:
      DerivationError: If either code cannot be generated.
  """
  event_code = generate_totp(descriptor.event_key, now_ms, key_name="event key")
  customer_code = generate_totp(descriptor.customer_key, now_ms, key_name="customer key")
  epoch_seconds = now_ms // 1000
  return tcst.TOKEN_DELIMITER.join([descriptor.bearer_id, event_code, customer_code, str(epoch_seconds)])

def compute_token_result(raw: str | None, now_ms: int) -> TokenResult:
  """
  Decodes `raw` and derives its token, absorbing ticket errors into the result.

  An absent or blank ticket gives NO_TICKET, a ticket that fails to decode or
  derive gives INVALID_TICKET with the error message kept.
  """
  window = time_window(now_ms)
  if raw is None or not raw.strip():
    return TokenResult(status=TokenStatus.NO_TICKET, window=window)

  try:
    descriptor = decode_ticket(raw)
    token = derive_signed_token(descriptor, now_ms)
  except TicketError as e:
    logger.warning(f"No token available: {e}")
    return TokenResult(status=TokenStatus.INVALID_TICKET, window=window, error=str(e))

  logger.debug(f"Derived token for window {window}: {token}")
  return TokenResult(status=TokenStatus.READY, window=window, token=token)
