"""
Application state machine, free of any UI toolkit.

idle -> configuring (image method) -> processing -> success | error
idle -(json submit)-> success
success | error -(reset)-> idle
"""
import logging
from typing import Any, Dict, List, Optional

from prayer_extractor.providers import validate_api_key

from .errors import InvalidTransitionError
from .validation import REQUIRED_FIELDS, parse_prayer_json

logger = logging.getLogger(__name__)


class AppState:
    IDLE = "idle"
    CONFIGURING = "configuring"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class InputMethod:
    IMAGE = "image"
    JSON = "json"


NO_VALID_KEY_MESSAGE = "Please enter a valid API key before uploading an image."
NO_DATA_MESSAGE = (
    "The AI could not extract any data. Please try another image or check if the image is clear."
)


class ExtractorState:
    """Holds the working record set and the current step.

    The credential lives only on this object; it is never logged or saved.
    """

    def __init__(self, default_provider: str = "gemini"):
        self.default_provider = default_provider
        # Bumped on every begin_extraction, survives reset
        self.attempt = 0
        self._clear()

    def _clear(self) -> None:
        self.state = AppState.IDLE
        self.input_method: Optional[str] = None
        self.provider = self.default_provider
        self.api_key = ""
        self.api_key_valid = False
        self.api_key_message: Optional[str] = "API key is required"
        self.records: List[Dict[str, str]] = []
        self.image_preview: Any = None
        self.error_message = ""

    def _require(self, *states: str) -> None:
        if self.state not in states:
            raise InvalidTransitionError(f"Not allowed in state '{self.state}'")

    def choose_method(self, method: str) -> None:
        self._require(AppState.IDLE, AppState.CONFIGURING)
        if method == InputMethod.IMAGE:
            self.input_method = method
            self.state = AppState.CONFIGURING
        elif method == InputMethod.JSON:
            self.input_method = method
            self.state = AppState.IDLE
        else:
            raise ValueError(f"Unknown input method: {method}")
        logger.debug(f"Input method: {method}")

    def ensure_can_extract(self) -> None:
        """Raise InvalidTransitionError unless an image extraction may start."""
        self._require(AppState.IDLE, AppState.CONFIGURING)

    def set_provider(self, provider: str) -> None:
        self.provider = provider
        self._revalidate_key()

    def set_api_key(self, api_key: str) -> None:
        self.api_key = api_key or ""
        self._revalidate_key()

    def _revalidate_key(self) -> None:
        result = validate_api_key(self.provider, self.api_key)
        self.api_key_valid = result.is_valid
        self.api_key_message = result.message

    def begin_extraction(self, image_preview: Any = None) -> bool:
        """Enter processing. Returns False (and enters error) without a valid key."""
        self._require(AppState.CONFIGURING)
        if not self.api_key_valid:
            self.error_message = NO_VALID_KEY_MESSAGE
            self.state = AppState.ERROR
            return False
        # Prior records are dropped before the new attempt resolves
        self.records = []
        self.image_preview = image_preview
        self.error_message = ""
        self.state = AppState.PROCESSING
        self.attempt += 1
        return True

    def is_current(self, attempt: int) -> bool:
        """True while the given extraction attempt may still resolve."""
        return self.state == AppState.PROCESSING and attempt == self.attempt

    def complete_extraction(self, records: List[Dict[str, str]]) -> None:
        self._require(AppState.PROCESSING)
        if not records:
            self.fail_extraction(NO_DATA_MESSAGE)
            return
        self.records = list(records)
        self.state = AppState.SUCCESS
        logger.info(f"Extraction complete: {len(self.records)} record(s)")

    def fail_extraction(self, error: Any) -> None:
        self._require(AppState.PROCESSING)
        self.error_message = f"Failed to process image. {error}"
        self.state = AppState.ERROR

    def submit_json(self, text: str) -> List[Dict[str, str]]:
        """Validate pasted JSON and go straight to success.

        PrayerDataError propagates to the caller; state is left unchanged.
        """
        self._require(AppState.IDLE, AppState.CONFIGURING)
        records = parse_prayer_json(text)
        self.input_method = InputMethod.JSON
        self.records = records
        self.error_message = ""
        self.state = AppState.SUCCESS
        logger.info(f"Accepted {len(records)} record(s) from JSON input")
        return records

    def update_record(self, index: int, field: str, value: str) -> None:
        """Edit one cell. Values are not re-validated."""
        self._require(AppState.SUCCESS)
        if field not in REQUIRED_FIELDS:
            raise KeyError(field)
        if index < 0 or index >= len(self.records):
            raise IndexError(f"Record index {index} out of range")
        record = dict(self.records[index])
        record[field] = value
        self.records[index] = record

    def reset(self) -> None:
        self._clear()
        logger.debug("State reset")

    def summary(self) -> Dict[str, Any]:
        """Safe view of the state (no credential)."""
        return {
            "state": self.state,
            "input_method": self.input_method,
            "provider": self.provider,
            "api_key_valid": self.api_key_valid,
            "record_count": len(self.records),
            "error_message": self.error_message or None,
        }
