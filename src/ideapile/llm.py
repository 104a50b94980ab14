"""
Remote completion client for IdeaPile.

Text in, text out. Supports both OpenAI and Anthropic APIs over httpx.
"""

import logging
from typing import Any

import httpx

from ideapile.config import get_llm_settings
from ideapile.errors import ConfigurationError, RemoteServiceError

logger = logging.getLogger(__name__)


class CompletionClient:
    """Single-shot text completion against the configured provider."""

    def __init__(
        self,
        settings: dict[str, Any] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings if settings is not None else get_llm_settings()
        self.provider = self.settings["provider"]
        self.api_key = self.settings.get("api_key")
        self.model = self.settings["model"]
        self.base_url = self.settings["base_url"].rstrip("/")
        self.timeout = self.settings.get("timeout", 30.0)
        self._transport = transport

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None) -> "CompletionClient":
        return cls(get_llm_settings(config))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def complete(self, prompt: str, max_tokens: int, temperature: float | None = None) -> str:
        """
        Send one prompt and return the completion text, stripped.

        Raises ConfigurationError when no API key is set and
        RemoteServiceError on any transport, HTTP, or shape failure, or when
        the completion is empty.
        """
        if not self.api_key:
            env_var = "ANTHROPIC_API_KEY" if self.provider == "anthropic" else "OPENAI_API_KEY"
            raise ConfigurationError(
                f"{self.provider.title()} API key not found. "
                f"Set {env_var} env var or add to config.",
                details={"provider": self.provider},
            )

        try:
            if self.provider == "anthropic":
                text = self._call_anthropic(prompt, max_tokens, temperature)
            else:
                text = self._call_openai(prompt, max_tokens, temperature)
        except httpx.HTTPStatusError as e:
            raise RemoteServiceError(
                f"Completion request failed with HTTP {e.response.status_code}",
                details={"provider": self.provider, "status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise RemoteServiceError(
                f"Completion request failed: {e}",
                details={"provider": self.provider},
            ) from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise RemoteServiceError(
                f"Unexpected completion response shape: {e}",
                details={"provider": self.provider},
            ) from e

        text = (text or "").strip()
        if not text:
            raise RemoteServiceError("Empty response from the model")

        logger.debug("Completion received from %s (%d chars)", self.model, len(text))
        return text

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def _call_anthropic(self, prompt: str, max_tokens: int, temperature: float | None) -> str:
        """Call Anthropic API."""
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            payload["temperature"] = temperature

        with self._client() as client:
            response = client.post(
                f"{self.base_url}/messages",
                headers={
                    "x-api-key": self.api_key,
                    "Content-Type": "application/json",
                    "anthropic-version": "2023-06-01",
                },
                json=payload,
            )
            response.raise_for_status()
            return response.json()["content"][0]["text"]

    def _call_openai(self, prompt: str, max_tokens: int, temperature: float | None) -> str:
        """Call OpenAI API."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            payload["temperature"] = temperature

        with self._client() as client:
            response = client.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]
