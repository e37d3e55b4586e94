"""Exceptions raised across the cross-posting pipeline."""


class CrosspostError(RuntimeError):
    """Base class for errors raised by bsky_crosspost."""


class ConfigError(CrosspostError):
    """Raised when configuration is missing or invalid."""


class UnexpectedUpstreamError(CrosspostError):
    """Raised when the PDS answers an XRPC call with a non-success status or an unusable body."""

    def __init__(self, endpoint: str, status: int, body: str):
        self.endpoint = endpoint
        self.status = status
        self.body = body
        super().__init__(f"{endpoint} failed with HTTP {status}: {body}")


class RecordNotFoundError(UnexpectedUpstreamError):
    """Raised by getRecord when the requested record does not exist."""


class UnparsableAtUriError(CrosspostError, ValueError):
    """Raised when an AT-URI is not of the form at://repo/collection/rkey."""
