from collections import namedtuple
from typing import Any, Dict, List, Optional

from prayer_extractor.core.errors import UnsupportedProviderError

from .base import (
    EXTRACTION_PROMPT,
    ExtractionProvider,
    ImagePayload,
    load_image,
    parse_model_output,
    strip_code_fences,
)
from .gemini import GeminiProvider
from .openai_gpt import OpenAIProvider

__all__ = [
    "EXTRACTION_PROMPT",
    "ExtractionProvider",
    "GeminiProvider",
    "ImagePayload",
    "KeyValidation",
    "OpenAIProvider",
    "PROVIDER_INFO",
    "extract_prayer_times",
    "get_provider",
    "load_image",
    "parse_model_output",
    "provider_name",
    "strip_code_fences",
    "validate_api_key",
]

_PROVIDERS = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}

PROVIDER_INFO: Dict[str, Dict[str, str]] = {
    "gemini": {
        "name": "Google Gemini",
        "description": "Google's advanced AI model with excellent vision capabilities for text extraction",
        "key_format": "AIza...",
        "instructions": "Get your API key from Google AI Studio (aistudio.google.com/app/apikey)",
    },
    "openai": {
        "name": "OpenAI GPT-4",
        "description": "OpenAI's GPT-4 with vision capabilities for accurate OCR and data extraction",
        "key_format": "sk-...",
        "instructions": "Get your API key from OpenAI Platform (platform.openai.com/api-keys)",
    },
}

KeyValidation = namedtuple("KeyValidation", ["is_valid", "message"], defaults=(None,))


def provider_tags() -> List[str]:
    return list(_PROVIDERS)


def provider_name(provider: str) -> str:
    info = PROVIDER_INFO.get(provider)
    return info["name"] if info else "Unknown Provider"


def validate_api_key(provider: str, api_key: Optional[str]) -> KeyValidation:
    """Format check only; the key is never sent anywhere to confirm it."""
    if not api_key or not api_key.strip():
        return KeyValidation(False, "API key is required")
    cls = _PROVIDERS.get(provider)
    if not cls:
        return KeyValidation(False, "Unknown provider")
    if not api_key.startswith(cls.key_prefix):
        if provider == "gemini":
            return KeyValidation(False, f'Gemini API keys typically start with "{cls.key_prefix}"')
        return KeyValidation(False, f'{cls.name} API keys start with "{cls.key_prefix}"')
    if len(api_key) < cls.min_key_length:
        return KeyValidation(False, f"{cls.name} API key seems too short")
    return KeyValidation(True)


def get_provider(provider: str, api_key: str, config: Optional[Dict[str, Any]] = None, logger=None) -> ExtractionProvider:
    """Factory: return provider instance for the given tag.

    config is the `providers` config section; per-provider keys are merged
    over the shared ones (request_timeout).
    """
    cls = _PROVIDERS.get(provider)
    if not cls:
        raise UnsupportedProviderError(provider)
    config = config or {}
    provider_config = {k: v for k, v in config.items() if not isinstance(v, dict)}
    provider_config.update(config.get(provider) or {})
    return cls(api_key, provider_config, logger=logger)


def extract_prayer_times(
    image: ImagePayload,
    provider: str,
    api_key: str,
    config: Optional[Dict[str, Any]] = None,
    logger=None,
) -> List[Dict[str, str]]:
    """Run one extraction round trip and return validated records (may be empty)."""
    return get_provider(provider, api_key, config, logger=logger).extract_prayer_times(image)
