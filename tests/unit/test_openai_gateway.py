"""
Tests for the OpenAI text generation gateway.

Provider HTTP traffic is served by pytest-httpx, so the real AsyncOpenAI
client builds the requests and raises its own exceptions.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.services.openai_service import (
    CompletionOptions,
    GatewayErr,
    GatewayErrorKind,
    GatewayOk,
    TextGenerationGateway,
)

COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def _completion(content):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def _error_body(code, message="error"):
    return {"error": {"message": message, "type": code, "param": None, "code": code}}


@pytest.fixture
def gateway():
    return TextGenerationGateway(api_key="sk-test", model="gpt-4o", timeout=5.0)


@pytest.mark.asyncio
async def test_unconfigured_gateway_makes_no_request(httpx_mock):
    gateway = TextGenerationGateway(api_key=None)

    result = await gateway.complete("hello")

    assert gateway.configured is False
    assert isinstance(result, GatewayErr)
    assert result.kind is GatewayErrorKind.UNCONFIGURED
    assert result.is_credential_issue
    assert httpx_mock.get_requests() == []


def test_blank_api_key_counts_as_unconfigured():
    gateway = TextGenerationGateway(api_key="   ")

    assert gateway.configured is False


@pytest.mark.asyncio
async def test_complete_returns_trimmed_text(httpx_mock, gateway):
    httpx_mock.add_response(method="POST", url=COMPLETIONS_URL, json=_completion("  Hi there!  "))

    result = await gateway.complete(
        "Say hi",
        system_prompt="Be brief.",
        options=CompletionOptions(temperature=0.3, max_tokens=50),
    )
    await gateway.close()

    assert result == GatewayOk(text="Hi there!")

    sent = json.loads(httpx_mock.get_request().content)
    assert sent["model"] == "gpt-4o"
    assert sent["temperature"] == 0.3
    assert sent["max_tokens"] == 50
    assert sent["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Say hi"},
    ]
    assert "response_format" not in sent


@pytest.mark.asyncio
async def test_json_mode_parses_payload(httpx_mock, gateway):
    httpx_mock.add_response(
        method="POST", url=COMPLETIONS_URL, json=_completion('{"playful": "hey you"}')
    )

    result = await gateway.complete("rewrite", options=CompletionOptions(json_mode=True))

    assert isinstance(result, GatewayOk)
    assert result.payload == {"playful": "hey you"}
    sent = json.loads(httpx_mock.get_request().content)
    assert sent["response_format"] == {"type": "json_object"}
    assert "system" not in [message["role"] for message in sent["messages"]]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["not json at all", "[1, 2, 3]"])
async def test_json_mode_rejects_non_object(httpx_mock, gateway, content):
    httpx_mock.add_response(method="POST", url=COMPLETIONS_URL, json=_completion(content))

    result = await gateway.complete("rewrite", options=CompletionOptions(json_mode=True))

    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "malformed json")


@pytest.mark.asyncio
async def test_empty_completion_is_provider_error(httpx_mock, gateway):
    httpx_mock.add_response(method="POST", url=COMPLETIONS_URL, json=_completion("   "))

    result = await gateway.complete("hello")

    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "empty response")


@pytest.mark.asyncio
async def test_rate_limit_maps_to_rate_limited(httpx_mock, gateway):
    httpx_mock.add_response(
        method="POST",
        url=COMPLETIONS_URL,
        status_code=429,
        json=_error_body("rate_limit_exceeded", "Rate limit reached"),
    )

    result = await gateway.complete("hello")

    assert isinstance(result, GatewayErr)
    assert result.kind is GatewayErrorKind.RATE_LIMITED
    assert not result.is_credential_issue
    # max_retries=0: exactly one attempt
    assert len(httpx_mock.get_requests()) == 1


@pytest.mark.asyncio
async def test_insufficient_quota_maps_to_quota_exceeded(httpx_mock, gateway):
    httpx_mock.add_response(
        method="POST",
        url=COMPLETIONS_URL,
        status_code=429,
        json=_error_body("insufficient_quota", "You exceeded your current quota"),
    )

    result = await gateway.complete("hello")

    assert isinstance(result, GatewayErr)
    assert result.kind is GatewayErrorKind.QUOTA_EXCEEDED


@pytest.mark.asyncio
async def test_authentication_error_is_credential_issue(httpx_mock, gateway):
    httpx_mock.add_response(
        method="POST",
        url=COMPLETIONS_URL,
        status_code=401,
        json=_error_body("invalid_api_key", "Incorrect API key provided"),
    )

    result = await gateway.complete("hello")

    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "invalid api key")
    assert result.is_credential_issue


@pytest.mark.asyncio
async def test_server_error_reports_status(httpx_mock, gateway):
    httpx_mock.add_response(
        method="POST", url=COMPLETIONS_URL, status_code=500, json=_error_body("server_error")
    )

    result = await gateway.complete("hello")

    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "api error (500)")
    assert not result.is_credential_issue


@pytest.mark.asyncio
async def test_timeout_maps_to_provider_error(httpx_mock, gateway):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), method="POST", url=COMPLETIONS_URL)

    result = await gateway.complete("hello")

    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "timeout")


@pytest.mark.asyncio
async def test_unexpected_exception_never_escapes():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=ValueError("boom"))
    gateway = TextGenerationGateway(api_key=None, client=client)

    result = await gateway.complete("hello")

    assert gateway.configured is True
    assert result == GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "unexpected error")


def test_credential_issue_detection_by_detail():
    assert GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "Missing API key header").is_credential_issue
    assert not GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "timeout").is_credential_issue
    assert not GatewayErr(GatewayErrorKind.RATE_LIMITED, "invalid api key").is_credential_issue
