"""
Exceptions raised inside the relay.

None of these reach a client: protocol errors are dropped, store errors go
through the ban-check policy and notifier errors stay inside the notifier.
"""


class RelayError(Exception):
    """Base class for all exceptions here."""

    pass


class ProtocolError(RelayError):
    """Raised when an inbound message cannot be understood."""

    pass


class StoreUnavailable(RelayError):
    """Raised when the ban store fails or does not answer in time."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause!r}")


class NotificationFailure(RelayError):
    """Raised by a notifier transport when delivery fails."""

    pass


class ProbeError(RelayError):
    """Raised when a liveness probe fails for a reason other than a busy port."""

    def __init__(self, port: int, cause: BaseException):
        self.port = port
        self.cause = cause
        super().__init__(f"probe of port {port} failed: {cause!r}")
