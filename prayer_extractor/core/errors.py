"""
Error types raised by validation, extraction, export and the state machine.
Callers catch these at the boundary of the operation and show str(exc).
"""
from typing import Optional


class PrayerDataError(ValueError):
    """Prayer records failed the shape/format contract. index is 0-based or None."""

    def __init__(self, reason: str, index: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.index = index


class ExtractionError(Exception):
    """Base for failures while extracting records from an image."""


class UnsupportedProviderError(ValueError):
    """Provider tag is not one of the known backends."""

    def __init__(self, provider: str):
        super().__init__(f"Unsupported AI provider: {provider}")
        self.provider = provider


class ProviderTransportError(ExtractionError):
    """Network failure, timeout or non-success response from the AI backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedOutputError(ExtractionError):
    """The backend answered, but its output is not parseable JSON."""


class InvalidPayloadError(ExtractionError):
    """The backend returned JSON that does not match the prayer record contract."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class BotConfigurationError(Exception):
    """No bot endpoint configured."""


class BotSendError(Exception):
    """Bot endpoint rejected the payload or could not be reached."""


class InvalidTransitionError(RuntimeError):
    """Operation not allowed in the current application state."""
