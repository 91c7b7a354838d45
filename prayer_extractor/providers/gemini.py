"""
Google Gemini provider via the Generative Language REST API.
The image travels as an inline base64 part; the response is constrained to a
JSON array with responseSchema so fences are rare, but still stripped.
"""
from typing import Any, Dict

from prayer_extractor.core.errors import ProviderTransportError
from prayer_extractor.core.validation import REQUIRED_FIELDS

from .base import EXTRACTION_PROMPT, ExtractionProvider, ImagePayload, image_to_base64

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

_FIELD_DESCRIPTIONS = {
    "date": "The Gregorian date for the prayer times, formatted as YYYY-MM-DD.",
    "fajr": "The time for Fajr prayer in HH:mm format.",
    "dhuhr": "The time for Dhuhr prayer in HH:mm format.",
    "asr": "The time for Asr prayer in HH:mm format.",
    "maghrib": "The time for Maghrib prayer in HH:mm format.",
    "isha": "The time for Isha prayer in HH:mm format.",
}

PRAYER_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            field: {"type": "STRING", "description": _FIELD_DESCRIPTIONS[field]}
            for field in REQUIRED_FIELDS
        },
        "required": list(REQUIRED_FIELDS),
    },
}


class GeminiProvider(ExtractionProvider):
    name = "Gemini"
    key_prefix = "AIza"
    min_key_length = 30

    def build_request(self, image: ImagePayload) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"inline_data": {"mime_type": image.mime_type, "data": image_to_base64(image)}},
                        {"text": EXTRACTION_PROMPT},
                    ]
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": PRAYER_SCHEMA,
            },
        }

    def extract_text(self, image: ImagePayload) -> str:
        model = self.config.get("model", DEFAULT_GEMINI_MODEL)
        api_base = self.config.get("api_base", GEMINI_API_BASE).rstrip("/")
        url = f"{api_base}/models/{model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        self.logger.info(f"Sending {image.name} ({len(image.data)} bytes) to Gemini model {model}")
        data = self._post(url, self.build_request(image), headers)

        candidates = data.get("candidates") or []
        parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        if not text:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ProviderTransportError(f"Gemini blocked the request: {block_reason}")
            raise ProviderTransportError("No response content from Gemini API")
        return text
