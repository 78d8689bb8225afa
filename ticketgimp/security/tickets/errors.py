class TicketError(Exception):
    """Base class for ticket-related exceptions."""
    pass

class DecodeError(TicketError):
    """Raised when a raw ticket cannot be decoded into a descriptor."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Could not decode ticket: {reason}")

class DerivationError(TicketError):
    """Raised when a one-time code cannot be generated from a ticket key."""

    def __init__(self, key_name: str, reason: str):
        self.key_name = key_name
        self.reason = reason
        super().__init__(f"Could not derive code from {key_name}: {reason}")

class TicketStoreError(TicketError):
    """Raised when the persisted ticket store cannot be read."""
    def __init__(self, message: str):
        super().__init__(message)
