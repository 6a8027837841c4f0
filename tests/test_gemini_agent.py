import json

import httpx
import pytest
import respx

from agents.gemini_agent import EXTRACTION_PROMPT, GeminiAgent
from errors import AiServiceError

API_URL = "https://gemini.example.com/v1beta/models"
ENDPOINT = f"{API_URL}/test-model:generateContent"


@pytest.fixture
def agent():
    return GeminiAgent(api_key="test-key", api_url=API_URL, model="test-model", timeout=5)


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@respx.mock
def test_returns_first_candidate_text(agent):
    route = respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json=gemini_reply('{"vendor": "ACME"}')))

    text = agent.extract_invoice_data("aGVsbG8=", "image/png")

    assert text == '{"vendor": "ACME"}'
    request = route.calls.last.request
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0]["text"] == EXTRACTION_PROMPT
    assert parts[1]["inline_data"] == {"mime_type": "image/png", "data": "aGVsbG8="}


@respx.mock
def test_rate_limit_maps_to_ai_service_error(agent):
    respx.post(ENDPOINT).mock(return_value=httpx.Response(429, text="quota"))

    with pytest.raises(AiServiceError, match="rate limit"):
        agent.extract_invoice_data("aGVsbG8=")


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failure_maps_to_invalid_credentials(agent, status):
    with respx.mock:
        respx.post(ENDPOINT).mock(return_value=httpx.Response(status, text="denied"))

        with pytest.raises(AiServiceError, match="Invalid Gemini API key"):
            agent.extract_invoice_data("aGVsbG8=")


@respx.mock
def test_other_error_status_carries_upstream_body(agent):
    respx.post(ENDPOINT).mock(return_value=httpx.Response(500, text="backend exploded"))

    with pytest.raises(AiServiceError, match="backend exploded"):
        agent.extract_invoice_data("aGVsbG8=")


@respx.mock
def test_missing_candidates_is_no_valid_response(agent):
    respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json={"candidates": []}))

    with pytest.raises(AiServiceError, match="No valid response"):
        agent.extract_invoice_data("aGVsbG8=")


@respx.mock
def test_empty_parts_is_no_valid_response(agent):
    respx.post(ENDPOINT).mock(return_value=httpx.Response(200, json={"candidates": [{"content": {"parts": []}}]}))

    with pytest.raises(AiServiceError, match="No valid response"):
        agent.extract_invoice_data("aGVsbG8=")


@respx.mock
def test_transport_failure_maps_to_ai_service_error(agent):
    respx.post(ENDPOINT).mock(side_effect=httpx.ConnectTimeout("timed out"))

    with pytest.raises(AiServiceError, match="timed out"):
        agent.extract_invoice_data("aGVsbG8=")


def test_empty_image_is_rejected_without_request(agent):
    with respx.mock(assert_all_called=False) as mock:
        route = mock.post(ENDPOINT)
        with pytest.raises(AiServiceError):
            agent.extract_invoice_data("")
        assert not route.called
