"""Custom exception hierarchy for pygunshot."""

from __future__ import annotations


class GunshotError(Exception):
    """Base exception for all pygunshot errors."""


class GunshotConfigError(GunshotError):
    """Invalid or missing configuration."""


class GunshotTransportError(GunshotError):
    """HTTP or socket level failure (network, non-200, invalid JSON, handshake)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class GunshotPayloadError(GunshotError):
    """A payload could not be parsed or normalized into sensors/events.

    Raised by the ingestion adapters. The connection and poll boundaries
    catch it and discard the single offending message, so it never reaches
    engine consumers.
    """

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason or message
        super().__init__(message)
