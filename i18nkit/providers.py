"""Identifier and translation provider abstractions."""

from __future__ import annotations

import asyncio
import json
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

import httpx
import openai

from .errors import ProviderConfigurationError, ProviderError, ResponseFormatError
from .ids import text_hash
from .prompts import (
    PromptOverrides,
    id_generation_system_prompt,
    id_generation_user_prompt,
    translation_system_prompt,
    translation_user_prompt,
)
from .reporting import Reporter, silent_reporter
from .structures import Translations

R = TypeVar("R")

DEFAULT_TIMEOUT = 60.0
RETRYABLE_STATUS = frozenset({408, 409, 425, 429})


@dataclass
class RetryPolicy:
    """Exponential backoff for one provider request.

    ``max_retries`` counts the attempts after the first one, so a request
    is tried at most ``max_retries + 1`` times.
    """

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 10.0
    factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the failed attempt number ``attempt`` (0-based)."""

        return min(self.base_delay * self.factor**attempt, self.max_delay)

    @staticmethod
    def is_retryable(exc: BaseException) -> bool:
        if isinstance(exc, ProviderError):
            return exc.retryable
        return isinstance(exc, (asyncio.TimeoutError, httpx.HTTPError))

    async def run(
        self,
        factory: Callable[[], Awaitable[R]],
        *,
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        reporter: Reporter | None = None,
    ) -> R:
        """Await ``factory()`` until it succeeds or the retries are used up."""

        reporter = reporter or silent_reporter()
        attempt = 0
        while True:
            try:
                if timeout:
                    return await asyncio.wait_for(factory(), timeout=timeout)
                return await factory()
            except Exception as exc:
                if attempt >= self.max_retries or not self.is_retryable(exc):
                    raise
                delay = self.delay_for(attempt)
                attempt += 1
                reporter.warn(
                    f"Request failed (attempt {attempt} of {self.max_retries + 1}: {str(exc) or type(exc).__name__}). "
                    f"Retrying in {delay:g}s..."
                )
                await sleep(delay)


class Provider(ABC):
    """Abstract adapter for identifier and translation services."""

    name = "provider"

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug

    @abstractmethod
    async def generate_ids(self, texts: Sequence[str]) -> List[str]:
        """Propose one semantic identifier per text, in order."""

    @abstractmethod
    async def translate(
        self,
        batch: Translations,
        *,
        source_locale: str,
        target_locale: str,
    ) -> Translations:
        """Return ``batch`` with the target locale filled in."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not self.debug:
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[i18nkit][provider-debug] {label}:\n{message}", file=sys.stderr)

    @staticmethod
    def _strip_code_fence(text: str) -> str:
        """Remove leading/trailing markdown code fences if present."""

        stripped = text.strip()
        if not stripped.startswith("```"):
            return stripped
        first_newline = stripped.find("\n")
        if first_newline == -1:
            return stripped.strip("`").strip()
        body = stripped[first_newline + 1 :]
        closing_index = body.rfind("```")
        if closing_index != -1:
            body = body[:closing_index]
        return body.strip()

    def _parse_json(self, payload: Any) -> Any:
        if isinstance(payload, str):
            text = self._strip_code_fence(payload)
            try:
                return json.loads(text)
            except json.JSONDecodeError as exc:
                raise ResponseFormatError(
                    f"Provider returned invalid JSON: {text[:200]}"
                ) from exc
        return payload

    def _normalise_ids(self, payload: Any) -> List[str]:
        """Read ``{"id_list": [...]}`` (or a bare list) into identifiers."""

        payload = self._parse_json(payload)
        if isinstance(payload, dict):
            payload = payload.get("id_list")
        if not isinstance(payload, list):
            raise ResponseFormatError("Provider response malformed: missing id_list array.")
        return [str(item) if item is not None else "" for item in payload]

    def _normalise_translations(self, payload: Any) -> Translations:
        payload = self._parse_json(payload)
        if not isinstance(payload, dict):
            raise ResponseFormatError("Provider response malformed: expected a JSON object.")
        result: Translations = {}
        for key, entry in payload.items():
            if isinstance(entry, dict):
                result[str(key)] = {str(locale): "" if text is None else str(text) for locale, text in entry.items()}
        return result


class EchoProvider(Provider):
    """Offline provider: hashed identifiers and source text as translation."""

    name = "echo"

    async def generate_ids(self, texts: Sequence[str]) -> List[str]:
        return [f"t_{text_hash(text)}" for text in texts]

    async def translate(
        self,
        batch: Translations,
        *,
        source_locale: str,
        target_locale: str,
    ) -> Translations:
        result: Translations = {}
        for key, entry in batch.items():
            filled = dict(entry)
            if not filled.get(target_locale):
                filled[target_locale] = entry.get(source_locale, "")
            result[key] = filled
        return result


class OpenAIProvider(Provider):
    """Provider that uses OpenAI (or Azure OpenAI) chat completions in JSON mode."""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        *,
        kind: str | None = None,
        model: str | None = None,
        temperature: float = 0.3,
        timeout: float = DEFAULT_TIMEOUT,
        overrides: PromptOverrides | None = None,
        source_locale: str = "zh-CN",
        environ: Mapping[str, str] | None = None,
        client: Any = None,
        debug: bool = False,
    ) -> None:
        super().__init__(debug=debug)
        self.environ = os.environ if environ is None else environ
        provider_value = kind or self.environ.get("LLM_PROVIDER", "openai") or "openai"
        normalized = provider_value.strip().lower()
        if normalized in {"azure_open_ai", "azure-openai", "azure"}:
            normalized = "azure_openai"
        if normalized not in {"openai", "azure_openai"}:
            normalized = "openai"
        self.provider_kind = normalized
        self.name = normalized
        self.temperature = temperature
        self.timeout = timeout
        self.overrides = overrides
        self.source_locale = source_locale
        if client is not None:
            self._client, self._default_model = client, self.DEFAULT_MODEL
        else:
            self._client, self._default_model = self._build_client()
        self.model = model or self._default_model

    def _build_client(self) -> tuple[Any, str]:
        if self.provider_kind == "azure_openai":
            return self._build_azure_client()
        return self._build_openai_client()

    def _build_openai_client(self) -> tuple[Any, str]:
        api_key = self.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.environ.get("OPENAI_BASE_URL") or None,
            timeout=self.timeout,
            max_retries=0,
        )
        return client, self.environ.get("OPENAI_MODEL") or self.DEFAULT_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        api_key = self.environ.get("AZURE_OPENAI_API_KEY")
        endpoint = self.environ.get("AZURE_OPENAI_ENDPOINT")
        api_version = self.environ.get("AZURE_OPENAI_API_VERSION")
        deployment_name = self.environ.get("AZURE_OPENAI_DEPLOYMENT_NAME")

        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": api_key,
                "AZURE_OPENAI_ENDPOINT": endpoint,
                "AZURE_OPENAI_API_VERSION": api_version,
                "AZURE_OPENAI_DEPLOYMENT_NAME": deployment_name,
            }.items()
            if not value
        ]
        if missing:
            raise ProviderConfigurationError(
                "Azure OpenAI configuration incomplete. Please set: "
                + ", ".join(missing)
                + "."
            )

        client = openai.AsyncAzureOpenAI(
            api_key=api_key,
            api_version=api_version,
            azure_endpoint=endpoint,
            timeout=self.timeout,
            max_retries=0,
        )
        return client, deployment_name  # type: ignore[return-value]

    async def generate_ids(self, texts: Sequence[str]) -> List[str]:
        if not texts:
            return []
        content = await self._chat(
            id_generation_system_prompt(self.source_locale, self.overrides),
            id_generation_user_prompt(texts, self.source_locale, self.overrides),
        )
        ids = self._normalise_ids(content)
        self._log_debug("provider.response.id_list", ids)
        return ids

    async def translate(
        self,
        batch: Translations,
        *,
        source_locale: str,
        target_locale: str,
    ) -> Translations:
        if not batch:
            return {}
        json_text = json.dumps(batch, ensure_ascii=False, indent=2)
        content = await self._chat(
            translation_system_prompt(source_locale, target_locale, self.overrides),
            translation_user_prompt(json_text, source_locale, target_locale, self.overrides),
        )
        return self._normalise_translations(content)

    async def _chat(self, system_prompt: str, user_prompt: str) -> str:
        self._log_debug("provider.request.system_prompt", system_prompt)
        self._log_debug("provider.request.user_prompt", user_prompt)
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as exc:
            retryable = exc.status_code in RETRYABLE_STATUS or exc.status_code >= 500
            raise ProviderError(
                f"Provider request rejected ({exc.status_code}): {exc.message}", retryable=retryable
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(f"Provider temporarily unavailable: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        content: Optional[str] = None
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)
        self._log_debug("provider.response.raw", content or "")
        if not content:
            raise ResponseFormatError("Provider response empty or unrecognised.")
        return content

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()


@dataclass
class DifyEndpoint:
    """One Dify workflow endpoint."""

    url: str
    api_key: str
    timeout: float = DEFAULT_TIMEOUT


class DifyProvider(Provider):
    """Provider that calls Dify workflows over HTTP in blocking mode."""

    name = "dify"

    def __init__(
        self,
        *,
        id_endpoint: DifyEndpoint | None = None,
        translation_endpoint: DifyEndpoint | None = None,
        client: httpx.AsyncClient | None = None,
        debug: bool = False,
    ) -> None:
        super().__init__(debug=debug)
        if id_endpoint is None and translation_endpoint is None:
            raise ProviderConfigurationError(
                "Dify configuration missing. Set dify.id_generation and/or "
                "dify.translation (url and api_key)."
            )
        self.id_endpoint = id_endpoint
        self.translation_endpoint = translation_endpoint
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    async def generate_ids(self, texts: Sequence[str]) -> List[str]:
        if not texts:
            return []
        endpoint = self._require(self.id_endpoint, "id_generation")
        payload = await self._post(
            endpoint,
            {"text_list": json.dumps(list(texts), ensure_ascii=False)},
        )
        return self._normalise_ids(self._results(payload))

    async def translate(
        self,
        batch: Translations,
        *,
        source_locale: str,
        target_locale: str,
    ) -> Translations:
        if not batch:
            return {}
        endpoint = self._require(self.translation_endpoint, "translation")
        payload = await self._post(
            endpoint,
            {"input_locale": json.dumps(batch, ensure_ascii=False, indent=2)},
        )
        return self._normalise_translations(self._results(payload))

    @staticmethod
    def _require(endpoint: DifyEndpoint | None, label: str) -> DifyEndpoint:
        if endpoint is None or not endpoint.url or not endpoint.api_key:
            raise ProviderConfigurationError(f"Dify {label} endpoint is not configured (url and api_key).")
        return endpoint

    async def _post(self, endpoint: DifyEndpoint, inputs: Dict[str, str]) -> Any:
        body = {"inputs": inputs, "response_mode": "blocking", "user": "i18n"}
        self._log_debug("provider.request.payload", body)
        try:
            response = await self._client.post(
                endpoint.url,
                json=body,
                headers={"Authorization": f"Bearer {endpoint.api_key}"},
                timeout=endpoint.timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(f"Dify request timed out after {endpoint.timeout:g}s") from exc
        except httpx.TransportError as exc:
            raise ProviderError(f"Dify temporarily unavailable: {exc}") from exc

        if response.status_code >= 400:
            retryable = response.status_code in RETRYABLE_STATUS or response.status_code >= 500
            raise ProviderError(
                f"Dify request failed: {response.status_code} {response.reason_phrase}",
                retryable=retryable,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ResponseFormatError("Dify returned a non-JSON body.") from exc
        self._log_debug("provider.response.raw", payload)
        return payload

    @staticmethod
    def _results(payload: Any) -> Any:
        try:
            return payload["data"]["outputs"]["results"]
        except (KeyError, TypeError) as exc:
            raise ResponseFormatError("Dify response malformed: missing data.outputs.results.") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_provider(
    name: str | None,
    *,
    model: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    overrides: PromptOverrides | None = None,
    source_locale: str = "zh-CN",
    dify_id: DifyEndpoint | None = None,
    dify_translation: DifyEndpoint | None = None,
    environ: Mapping[str, str] | None = None,
    debug: bool = False,
) -> Provider:
    """Factory to create providers by name."""

    env = os.environ if environ is None else environ
    normalized = (name or env.get("LLM_PROVIDER") or "openai").strip().lower()
    options = dict(
        model=model,
        timeout=timeout,
        overrides=overrides,
        source_locale=source_locale,
        environ=env,
        debug=debug,
    )
    if normalized in {"openai", "gpt", "default"}:
        return OpenAIProvider(kind="openai", **options)
    if normalized in {"azure_openai", "azure-openai", "azure_open_ai", "azure"}:
        return OpenAIProvider(kind="azure_openai", **options)
    if normalized == "dify":
        return DifyProvider(id_endpoint=dify_id, translation_endpoint=dify_translation, debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoProvider(debug=debug)
    raise ProviderConfigurationError(f"Unknown provider '{name}'.")
