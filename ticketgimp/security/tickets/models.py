from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class TicketDescriptor(BaseModel):
    """
    The three fields carried by a ticket blob.

    Attributes:
        bearer_id (str): Opaque identifier of the ticket holder, passed through verbatim.
        customer_key (bytes): Customer scoped secret used for the customer code.
        event_key (bytes): Event scoped secret used for the event code.
    """
    model_config = ConfigDict(frozen=True)

    bearer_id: str
    customer_key: bytes
    event_key: bytes

    @field_validator("bearer_id")
    @classmethod
    def bearer_id_has_no_colon(cls, value: str) -> str:
        # Token fields are colon delimited
        if ":" in value:
            raise ValueError("bearer id must not contain ':'")
        return value

class TokenStatus(str, Enum):
    NO_TICKET = "no_ticket"
    INVALID_TICKET = "invalid_ticket"
    READY = "ready"

class TokenResult(BaseModel):
    """
    Outcome of a single token recomputation.

    Attributes:
        status (TokenStatus): Whether a token is available, and if not, why.
        token (str | None): The signed token, only set when status is READY.
        error (str | None): Message of the decode or derivation failure, if any.
        window (int): Time window the result was computed for.
    """
    model_config = ConfigDict(frozen=True)

    status: TokenStatus
    window: int
    token: str | None = None
    error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.status is TokenStatus.READY
