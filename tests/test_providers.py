import base64
import json
from unittest import mock

import pytest
import requests

from prayer_extractor.core.errors import (
    InvalidPayloadError,
    MalformedOutputError,
    ProviderTransportError,
    UnsupportedProviderError,
)
from prayer_extractor.providers import (
    EXTRACTION_PROMPT,
    GeminiProvider,
    OpenAIProvider,
    extract_prayer_times,
    get_provider,
    load_image,
    parse_model_output,
    strip_code_fences,
)

from .conftest import GEMINI_KEY, OPENAI_KEY, make_response

POST = "prayer_extractor.providers.base.requests.post"


def gemini_body(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def openai_body(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.mark.parametrize("raw, expected", [
    ("```json\n[]\n```", "[]"),
    ("```\n[1, 2]\n```", "[1, 2]"),
    ("  [1]  ", "[1]"),
    ("```json[{\"a\": 1}]```", '[{"a": 1}]'),
])
def test_strip_code_fences(raw, expected):
    assert strip_code_fences(raw) == expected


def test_fenced_empty_array_parses_to_empty_list():
    assert parse_model_output("```json\n[]\n```") == []


def test_malformed_output_is_not_a_validation_error():
    with pytest.raises(MalformedOutputError):
        parse_model_output("Sorry, I cannot read this image.")


def test_invalid_payload_includes_reason(record):
    del record["asr"]
    with pytest.raises(InvalidPayloadError) as exc:
        parse_model_output(json.dumps([record]), "OpenAI")
    assert "asr" in str(exc.value)
    assert exc.value.index == 0


def test_unknown_provider_fails_before_network(image):
    with mock.patch(POST) as post:
        with pytest.raises(UnsupportedProviderError):
            extract_prayer_times(image, "claude", "key")
        post.assert_not_called()


def test_get_provider_merges_config():
    provider = get_provider("openai", OPENAI_KEY, {"request_timeout": 30, "openai": {"model": "gpt-4o-mini"}, "gemini": {"model": "x"}})
    assert isinstance(provider, OpenAIProvider)
    assert provider.timeout == 30
    assert provider.config["model"] == "gpt-4o-mini"


def test_gemini_request_shape(image, records):
    with mock.patch(POST, return_value=make_response(body=gemini_body(json.dumps(records)))) as post:
        result = extract_prayer_times(image, "gemini", GEMINI_KEY)

    assert result == records
    post.assert_called_once()
    url = post.call_args.args[0]
    kwargs = post.call_args.kwargs
    assert url.endswith("/models/gemini-2.5-flash:generateContent")
    assert kwargs["headers"]["x-goog-api-key"] == GEMINI_KEY
    parts = kwargs["json"]["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "image/png"
    assert base64.b64decode(parts[0]["inline_data"]["data"]) == image.data
    assert parts[1]["text"] == EXTRACTION_PROMPT
    assert kwargs["json"]["generationConfig"]["responseMimeType"] == "application/json"
    assert kwargs["timeout"] == 120


def test_openai_request_shape_and_fence_stripping(image, records):
    content = "```json\n" + json.dumps(records) + "\n```"
    with mock.patch(POST, return_value=make_response(body=openai_body(content))) as post:
        result = extract_prayer_times(image, "openai", OPENAI_KEY)

    assert result == records
    url = post.call_args.args[0]
    payload = post.call_args.kwargs["json"]
    assert url == "https://api.openai.com/v1/chat/completions"
    assert post.call_args.kwargs["headers"]["Authorization"] == f"Bearer {OPENAI_KEY}"
    assert payload["model"] == "gpt-4o"
    assert payload["max_tokens"] == 4000
    message = payload["messages"][0]["content"]
    assert message[0] == {"type": "text", "text": EXTRACTION_PROMPT}
    assert message[1]["image_url"]["url"].startswith("data:image/png;base64,")
    assert message[1]["image_url"]["detail"] == "high"


def test_same_prompt_for_both_providers(image):
    gemini = GeminiProvider(GEMINI_KEY).build_request(image)
    openai = OpenAIProvider(OPENAI_KEY).build_request(image)
    assert gemini["contents"][0]["parts"][1]["text"] == openai["messages"][0]["content"][0]["text"]


def test_prompt_describes_month_rollover_and_digits():
    assert "YYYY-MM-DD" in EXTRACTION_PROMPT
    assert "HH:mm" in EXTRACTION_PROMPT
    assert "'2025-08-31' followed by '2025-09-01'" in EXTRACTION_PROMPT
    assert "٠١٢٣٤٥٦٧٨٩" in EXTRACTION_PROMPT


def test_non_success_status_is_transport_error(image):
    body = {"error": {"message": "Incorrect API key provided"}}
    with mock.patch(POST, return_value=make_response(401, body, reason="Unauthorized")) as post:
        with pytest.raises(ProviderTransportError) as exc:
            extract_prayer_times(image, "openai", OPENAI_KEY)
    assert post.call_count == 1
    assert exc.value.status_code == 401
    assert "401 Unauthorized" in str(exc.value)
    assert "Incorrect API key provided" in str(exc.value)


def test_timeout_is_transport_error(image):
    with mock.patch(POST, side_effect=requests.exceptions.Timeout("slow")) as post:
        with pytest.raises(ProviderTransportError, match="timed out"):
            extract_prayer_times(image, "gemini", GEMINI_KEY, {"request_timeout": 5})
    assert post.call_count == 1


def test_connection_error_is_transport_error(image):
    with mock.patch(POST, side_effect=requests.exceptions.ConnectionError("down")):
        with pytest.raises(ProviderTransportError, match="Network error"):
            extract_prayer_times(image, "gemini", GEMINI_KEY)


def test_body_not_json_is_transport_error(image):
    with mock.patch(POST, return_value=make_response(json_error=True)):
        with pytest.raises(ProviderTransportError, match="not JSON"):
            extract_prayer_times(image, "openai", OPENAI_KEY)


def test_missing_content_is_transport_error(image):
    with mock.patch(POST, return_value=make_response(body={"choices": []})):
        with pytest.raises(ProviderTransportError, match="No response content"):
            extract_prayer_times(image, "openai", OPENAI_KEY)
    with mock.patch(POST, return_value=make_response(body={"candidates": [], "promptFeedback": {"blockReason": "SAFETY"}})):
        with pytest.raises(ProviderTransportError, match="SAFETY"):
            extract_prayer_times(image, "gemini", GEMINI_KEY)


def test_model_prose_is_malformed_output(image):
    with mock.patch(POST, return_value=make_response(body=gemini_body("I could not find a table."))):
        with pytest.raises(MalformedOutputError):
            extract_prayer_times(image, "gemini", GEMINI_KEY)


def test_load_image(tmp_path):
    path = tmp_path / "table.jpg"
    path.write_bytes(b"jpegdata")
    image = load_image(path)
    assert image.mime_type == "image/jpeg"
    assert image.data == b"jpegdata"
    assert image.name == "table.jpg"

    text = tmp_path / "notes.txt"
    text.write_text("hello")
    with pytest.raises(ValueError):
        load_image(text)
