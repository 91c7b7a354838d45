"""
OpenAI provider via the chat completions REST API (GPT-4o vision).
The image travels as a data URL; the model is asked for a bare JSON array but
often wraps it in a ```json fence, which the shared parser strips.
"""
from typing import Any, Dict

from prayer_extractor.core.errors import ProviderTransportError

from .base import EXTRACTION_PROMPT, ExtractionProvider, ImagePayload, image_to_data_url

OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.1


class OpenAIProvider(ExtractionProvider):
    name = "OpenAI"
    key_prefix = "sk-"
    min_key_length = 40

    def build_request(self, image: ImagePayload) -> Dict[str, Any]:
        return {
            "model": self.config.get("model", DEFAULT_OPENAI_MODEL),
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EXTRACTION_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": image_to_data_url(image), "detail": "high"},
                        },
                    ],
                }
            ],
            "max_tokens": self.config.get("max_tokens", DEFAULT_MAX_TOKENS),
            # Low temperature for consistent extraction
            "temperature": self.config.get("temperature", DEFAULT_TEMPERATURE),
        }

    def extract_text(self, image: ImagePayload) -> str:
        api_base = self.config.get("api_base", OPENAI_API_BASE).rstrip("/")
        url = f"{api_base}/chat/completions"
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

        payload = self.build_request(image)
        self.logger.info(f"Sending {image.name} ({len(image.data)} bytes) to OpenAI model {payload['model']}")
        data = self._post(url, payload, headers)

        choices = data.get("choices") or []
        content = ((choices[0].get("message") or {}).get("content")) if choices else None
        if not content:
            raise ProviderTransportError("No response content from OpenAI API")
        return content
