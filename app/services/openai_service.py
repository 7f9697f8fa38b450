# app/services/openai_service.py
"""
OpenAI Text Generation Gateway
Single boundary for every call to the language-model provider.

Callers never see provider exceptions: every call resolves to a GatewayResult,
either GatewayOk(text) or GatewayErr(kind, detail). No retries happen here;
callers fall back instead.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import openai
from openai import AsyncOpenAI

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class GatewayErrorKind(str, Enum):
    UNCONFIGURED = "unconfigured"
    RATE_LIMITED = "rateLimited"
    QUOTA_EXCEEDED = "quotaExceeded"
    PROVIDER_ERROR = "providerError"


_CREDENTIAL_DETAIL = "invalid api key"


@dataclass(frozen=True, slots=True)
class GatewayOk:
    text: str
    # Parsed JSON object when the call was made in JSON mode
    payload: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class GatewayErr:
    kind: GatewayErrorKind
    detail: str

    @property
    def is_credential_issue(self) -> bool:
        """True when the failure comes from a missing or rejected credential."""
        if self.kind is GatewayErrorKind.UNCONFIGURED:
            return True
        detail = self.detail.lower()
        return self.kind is GatewayErrorKind.PROVIDER_ERROR and (
            detail == _CREDENTIAL_DETAIL or "api key" in detail
        )


GatewayResult = GatewayOk | GatewayErr


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    json_mode: bool = False
    temperature: float = 0.7
    max_tokens: int = 500


class TextGenerationGateway:
    """
    Wrapper around the OpenAI chat completion API.

    Whether a credential exists is decided once, in the constructor. Without one
    every call returns GatewayErr(UNCONFIGURED) and no network I/O happens.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o",
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.timeout = timeout
        self.client = client
        if self.client is None and api_key and api_key.strip():
            self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

        if self.client is None:
            logger.warning("OpenAI API key not configured; text generation disabled")
        else:
            logger.info("OpenAI gateway initialized", model=model, timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "TextGenerationGateway":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def complete(
        self,
        user_prompt: str,
        *,
        system_prompt: str | None = None,
        options: CompletionOptions = CompletionOptions(),
    ) -> GatewayResult:
        """
        Run one chat completion.

        Args:
            user_prompt: Content of the user message
            system_prompt: Optional system message placed first
            options: JSON mode, temperature and token budget

        Returns:
            GatewayOk with the trimmed text (and parsed payload in JSON mode),
            or GatewayErr describing the failure kind.
        """
        if self.client is None:
            return GatewayErr(GatewayErrorKind.UNCONFIGURED, "OpenAI API key not configured")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        if options.json_mode:
            request["response_format"] = {"type": "json_object"}

        logger.debug(
            "Calling OpenAI chat completion",
            model=self.model,
            json_mode=options.json_mode,
            prompt_length=len(user_prompt),
            has_system_prompt=system_prompt is not None,
        )

        try:
            response = await self.client.chat.completions.create(**request)
        except openai.RateLimitError as e:
            if getattr(e, "code", None) == "insufficient_quota":
                return self._failure(GatewayErrorKind.QUOTA_EXCEEDED, "quota exceeded", e)
            return self._failure(GatewayErrorKind.RATE_LIMITED, "rate limited", e)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, _CREDENTIAL_DETAIL, e)
        except openai.APITimeoutError as e:
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, "timeout", e)
        except openai.APIError as e:
            status_code = getattr(e, "status_code", None)
            detail = f"api error ({status_code})" if status_code else "api error"
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, detail, e)
        except Exception as e:
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, "unexpected error", e)

        content = None
        if response.choices:
            content = response.choices[0].message.content
        text = (content or "").strip()
        if not text:
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, "empty response")

        logger.info(
            "OpenAI call successful",
            json_mode=options.json_mode,
            response_length=len(text),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )

        if not options.json_mode:
            return GatewayOk(text=text)

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, "malformed json", e)
        if not isinstance(payload, dict):
            return self._failure(GatewayErrorKind.PROVIDER_ERROR, "malformed json")

        return GatewayOk(text=text, payload=payload)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()

    def _failure(
        self, kind: GatewayErrorKind, detail: str, error: Exception | None = None
    ) -> GatewayErr:
        logger.warning(
            "OpenAI call failed",
            kind=kind.value,
            detail=detail,
            error_type=type(error).__name__ if error else None,
        )
        return GatewayErr(kind, detail)
