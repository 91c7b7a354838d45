from unittest import mock

import pytest

from prayer_extractor.providers import ImagePayload

GEMINI_KEY = "AIzaSyXXXXXXXXXXXXXXXXXXXXXXXXXXXX"
OPENAI_KEY = "sk-abcdefghij0123456789abcdefghij0123456789"


def make_response(status_code=200, body=None, reason="OK", json_error=False):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = reason
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def record():
    return {
        "date": "2025-01-01",
        "fajr": "05:30",
        "dhuhr": "12:15",
        "asr": "15:20",
        "maghrib": "17:45",
        "isha": "19:00",
    }


@pytest.fixture
def records(record):
    second = dict(record, date="2025-01-02", fajr="05:31")
    return [record, second]


@pytest.fixture
def image():
    return ImagePayload(data=b"\x89PNG\r\n\x1a\nfake", mime_type="image/png", name="timetable.png")
