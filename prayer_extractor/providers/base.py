"""
Base type and interface for AI extraction providers.
A provider sends the timetable image plus EXTRACTION_PROMPT to a remote vision
model in one request and returns the model's raw text. Parsing and validation
of that text is shared here so both providers behave the same.
"""
import base64
import json
import logging
import mimetypes
import re
from abc import ABC, abstractmethod
from collections import namedtuple
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from prayer_extractor.core.errors import (
    InvalidPayloadError,
    MalformedOutputError,
    PrayerDataError,
    ProviderTransportError,
)
from prayer_extractor.core.validation import validate_prayer_records

DEFAULT_REQUEST_TIMEOUT = 120

EXTRACTION_PROMPT = """You are an expert OCR and data extraction agent specializing in Arabic prayer timetables.
Your task is to extract the entire prayer schedule from the provided image.

Follow these steps carefully:
1. **Identify the Year and Month(s)**: First, locate the Gregorian year and month(s) from the text in the image header. The header will state the year and one or two Gregorian month names (e.g., "أوت / سبتمبر 2025 م" means August / September 2025).
2. **Process Each Row**: For each row in the timetable:
   a. **Extract the Day**: Read the day number from the Gregorian date column.
   b. **Construct the Full Date**: Combine the year, the correct month, and the extracted day to form a complete Gregorian date in `YYYY-MM-DD` format. When the day number resets to '01', you must switch to the next month. For example, if the year is 2025 and the days go from 31 to 01, the dates should be '2025-08-31' followed by '2025-09-01'.
   c. **Extract Prayer Times**: Extract the times for Fajr (الفجر), Dhuhr (الظهر), Asr (العصر), Maghrib (المغرب), and Isha (العشاء).
3. **Normalize Data**:
   - Convert all Arabic-Indic numerals (٠١٢٣٤٥٦٧٨٩) and Eastern Arabic numerals (۰۱۲۳۴۵۶۷۸۹) to Western numerals (0123456789).
   - Ensure all prayer times are in 24-hour `HH:mm` format.
4. **Format Output**: Return the extracted data as a valid JSON array. Each object must have these exact keys: "date", "fajr", "dhuhr", "asr", "maghrib", "isha". Ensure you extract all rows present in the timetable.

Return ONLY the JSON array, no additional text or formatting."""

# One image to extract from. data is the raw file content.
ImagePayload = namedtuple("ImagePayload", ["data", "mime_type", "name"], defaults=("image",))

_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def load_image(path) -> ImagePayload:
    """Read an image file from disk. Raises ValueError for non-image files."""
    path = Path(path)
    mime_type = mimetypes.guess_type(path.name)[0] or ""
    if not mime_type.startswith("image/"):
        raise ValueError(f"{path.name} is not an image file")
    return ImagePayload(data=path.read_bytes(), mime_type=mime_type, name=path.name)


def image_to_base64(image: ImagePayload) -> str:
    return base64.b64encode(image.data).decode("ascii")


def image_to_data_url(image: ImagePayload) -> str:
    return f"data:{image.mime_type};base64,{image_to_base64(image)}"


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence (```json ... ```) wrapped around model output."""
    if text is None:
        return ""
    m = _FENCE_RE.match(text)
    if m:
        return m.group(1).strip()
    return text.strip()


def parse_model_output(raw_text: str, provider_name: str = "AI") -> List[Dict[str, str]]:
    """Strip fences, decode JSON and validate it as prayer records.

    An empty array is returned as-is; the caller decides what zero rows means.
    """
    cleaned = strip_code_fences(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"{provider_name} returned output that is not valid JSON: {e.msg}") from e
    if isinstance(data, list) and len(data) == 0:
        return data
    try:
        return validate_prayer_records(data)
    except PrayerDataError as e:
        raise InvalidPayloadError(
            f"{provider_name} returned an invalid data structure. {e.reason}", index=e.index
        ) from e


class ExtractionProvider(ABC):
    """Abstract provider: one request per call, no retries."""

    name = "AI"
    key_prefix = ""
    min_key_length = 0

    def __init__(self, api_key: str, config: Optional[Dict[str, Any]] = None, logger=None):
        self.api_key = api_key
        self.config = config or {}
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.timeout = self.config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)

    @abstractmethod
    def extract_text(self, image: ImagePayload) -> str:
        """Send image and prompt, return the model's raw text output."""
        pass

    def extract_prayer_times(self, image: ImagePayload) -> List[Dict[str, str]]:
        raw = self.extract_text(image)
        self.logger.debug(f"{self.name} raw response (first 300 chars): {raw[:300]!r}")
        records = parse_model_output(raw, self.name)
        self.logger.info(f"{self.name} extracted {len(records)} record(s)")
        return records

    def _post(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """POST JSON, return decoded body. Every transport problem becomes ProviderTransportError."""
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise ProviderTransportError(f"{self.name} API request timed out after {self.timeout} seconds") from e
        except requests.exceptions.RequestException as e:
            raise ProviderTransportError(f"Network error contacting {self.name} API: {e}") from e

        if not response.ok:
            detail = self._error_detail(response)
            raise ProviderTransportError(
                f"{self.name} API error: {response.status_code} {response.reason}. {detail}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderTransportError(f"{self.name} API returned a response body that is not JSON") from e

    @staticmethod
    def _error_detail(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return "Unknown error"
