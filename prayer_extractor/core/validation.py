"""
Prayer record contract: a non-empty list of objects, each with string fields
date (YYYY-MM-DD) and fajr/dhuhr/asr/maghrib/isha (24h HH:mm).
Validation never coerces values; accepted data is returned as given.
"""
import json
import re
from typing import Any, Dict, List, Optional

from .errors import PrayerDataError

PRAYER_FIELDS = ["fajr", "dhuhr", "asr", "maghrib", "isha"]
REQUIRED_FIELDS = ["date"] + PRAYER_FIELDS

COLUMN_HEADERS = {
    "date": "Date",
    "fajr": "Fajr",
    "dhuhr": "Dhuhr",
    "asr": "Asr",
    "maghrib": "Maghrib",
    "isha": "Isha",
}

# ASCII digits only: \d would also accept Arabic-Indic digits
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"(?:[01][0-9]|2[0-3]):[0-5][0-9]")

EXAMPLE_RECORDS: List[Dict[str, str]] = [
    {
        "date": "2025-01-01",
        "fajr": "05:30",
        "dhuhr": "12:15",
        "asr": "15:20",
        "maghrib": "17:45",
        "isha": "19:00",
    },
    {
        "date": "2025-01-02",
        "fajr": "05:31",
        "dhuhr": "12:16",
        "asr": "15:21",
        "maghrib": "17:46",
        "isha": "19:01",
    },
]


def is_valid_date(value: Any) -> bool:
    return isinstance(value, str) and _DATE_RE.fullmatch(value) is not None


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and _TIME_RE.fullmatch(value) is not None


def validate_prayer_record(obj: Any) -> Optional[str]:
    """Return the reason obj is not a valid record, or None if it is."""
    if not isinstance(obj, dict):
        return "expected an object"
    for field in REQUIRED_FIELDS:
        if field not in obj:
            return f"missing required field '{field}'"
        if not isinstance(obj[field], str):
            return f"field '{field}' must be a string"
    if not is_valid_date(obj["date"]):
        return f"date '{obj['date']}' must be in YYYY-MM-DD format"
    for field in PRAYER_FIELDS:
        if not is_valid_time(obj[field]):
            return f"{field} '{obj[field]}' must be in HH:mm format"
    return None


def validate_prayer_records(data: Any) -> List[Dict[str, str]]:
    """Check a decoded JSON value against the record contract.

    Raises PrayerDataError carrying the first offending index. Returns data
    itself on success.
    """
    if not isinstance(data, list):
        raise PrayerDataError("Data must be an array of prayer time objects")
    if len(data) == 0:
        raise PrayerDataError("Array cannot be empty")
    for i, item in enumerate(data):
        reason = validate_prayer_record(item)
        if reason:
            raise PrayerDataError(f"Invalid prayer time object at index {i}: {reason}", index=i)
    return data


def parse_prayer_json(text: str) -> List[Dict[str, str]]:
    """Parse user supplied JSON text and validate it."""
    if not text or not text.strip():
        raise PrayerDataError("Please enter JSON data")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PrayerDataError("Invalid JSON format. Please check your JSON syntax.") from e
    return validate_prayer_records(data)


def example_json() -> str:
    """Template text for the manual input panel."""
    return json.dumps(EXAMPLE_RECORDS, indent=2)
