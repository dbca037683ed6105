"""Error taxonomy shared by the adapters, the router and the selector.

Every failure carries a short ``reason`` so callers can tell apart, for
example, a missing feed from a pool without enough history and decide
whether to retry with different parameters.
"""


class OracleError(Exception):
    """Base exception for all quoting failures.

    :ivar reason: Short machine-friendly description of the failure.
    """

    def __init__(self, reason: str, detail: str | None = None):
        """Initialize the error.

        :param reason: Short failure reason (e.g., "bad period").
        :param detail: Optional human-readable context appended to the message.
        """
        self.reason = reason
        self.detail = detail
        message = reason if detail is None else f"{reason}: {detail}"
        super().__init__(message)


class InvalidParameter(OracleError, ValueError):
    """Raised when a query parameter is out of its valid range."""

    pass


class SourceUnavailable(OracleError):
    """Raised when a feed or pool needed for a quote does not exist."""

    pass


class InsufficientHistory(OracleError):
    """Raised when a pool's observations do not cover the requested window."""

    pass
