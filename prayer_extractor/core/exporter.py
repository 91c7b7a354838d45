"""
Export of the working record set: to a local JSON file, or POSTed to the
bot endpoint at {base_url}/api/update_times.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import BotConfigurationError, BotSendError

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "prayer-times.json"
UPDATE_TIMES_PATH = "/api/update_times"
DEFAULT_REVERT_DELAY = 3
DEFAULT_SEND_TIMEOUT = 15


def serialize_records(records: List[Dict[str, str]]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False)


def export_to_file(records: List[Dict[str, str]], directory=None, filename: str = DEFAULT_EXPORT_FILENAME) -> Path:
    """Write records as pretty-printed JSON and return the file path."""
    directory = Path(os.path.expanduser(str(directory))) if directory else Path.cwd()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(serialize_records(records), encoding="utf-8")
    logger.info(f"Exported {len(records)} record(s) to {path}")
    return path


def _timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class SendStatus:
    IDLE = "idle"
    SENDING = "sending"
    SUCCESS = "success"
    ERROR = "error"


class BotSender:
    """Sends records to the bot and tracks a transient send status.

    After every attempt the status returns to idle once revert_delay seconds
    have passed. scheduler(delay_seconds, callback) arranges that; the tk app
    passes one built on root.after.
    """

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = DEFAULT_SEND_TIMEOUT,
        revert_delay: float = DEFAULT_REVERT_DELAY,
        scheduler: Optional[Callable[[float, Callable[[], None]], Any]] = None,
        on_status_change: Optional[Callable[[str], None]] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.revert_delay = revert_delay
        self.scheduler = scheduler or _timer_scheduler
        self.on_status_change = on_status_change
        self.status = SendStatus.IDLE
        self.last_error: Optional[str] = None
        # Only the latest send may revert the status
        self._send_seq = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, bot_config: Optional[Dict[str, Any]], **kwargs) -> "BotSender":
        bot_config = bot_config or {}
        return cls(
            base_url=bot_config.get("base_url"),
            timeout=bot_config.get("timeout", DEFAULT_SEND_TIMEOUT),
            revert_delay=bot_config.get("revert_delay", DEFAULT_REVERT_DELAY),
            **kwargs,
        )

    @property
    def endpoint(self) -> Optional[str]:
        if not self.base_url:
            return None
        return f"{self.base_url.rstrip('/')}{UPDATE_TIMES_PATH}"

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.on_status_change:
            try:
                self.on_status_change(status)
            except Exception as e:
                logger.error(f"Error in send status callback: {e}", exc_info=True)

    def _revert(self, seq: int) -> None:
        if seq != self._send_seq:
            logger.debug(f"Ignoring revert of superseded send {seq}")
            return
        self._set_status(SendStatus.IDLE)

    def post(self, records: List[Dict[str, str]]) -> None:
        """Single POST. Raises BotSendError on transport error or non-2xx."""
        try:
            response = requests.post(
                self.endpoint,
                data=serialize_records(records).encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise BotSendError(f"Could not reach bot endpoint: {e}") from e
        if not response.ok:
            raise BotSendError(f"Server responded with status: {response.status_code}")

    def send(self, records: List[Dict[str, str]]) -> bool:
        """Send records, moving through sending -> success|error -> idle.

        Refused before any network attempt when no base URL is configured.
        """
        if not self.endpoint:
            raise BotConfigurationError("API URL is not configured. Please set bot.base_url in config.yaml.")
        with self._lock:
            if self.status == SendStatus.SENDING:
                logger.warning("Send already in progress, ignoring")
                return False
            self._send_seq += 1
            seq = self._send_seq
            self.status = SendStatus.SENDING
        self._set_status(SendStatus.SENDING)
        self.last_error = None
        ok = False
        try:
            logger.info(f"Sending {len(records)} record(s) to {self.endpoint}")
            self.post(records)
            ok = True
            self._set_status(SendStatus.SUCCESS)
        except BotSendError as e:
            logger.error(f"Failed to send data to bot: {e}")
            self.last_error = str(e)
            self._set_status(SendStatus.ERROR)
        finally:
            self.scheduler(self.revert_delay, lambda: self._revert(seq))
        return ok
