"""Failure taxonomy for the fetch layer.

Fetch functions raise these; the event bus catches them at the task
boundary and turns them into result-bearing events.
"""


class FetchError(Exception):
    """Base for every upstream failure."""


class NetworkError(FetchError):
    """Transport failure or a non-2xx response."""


class ParseError(FetchError):
    """Upstream answered but the payload did not have the expected shape."""


class EmptyResultError(FetchError):
    """Upstream answered with nothing usable (e.g. a zero-length history)."""


class CredentialError(FetchError):
    """Missing API key or a failed crumb handshake."""
