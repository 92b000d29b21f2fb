"""
Anthropic chat client
Alternative chat provider with the same ``complete`` signature as OpenRouterClient
"""
from typing import Dict, Optional

import structlog
from anthropic import AsyncAnthropic, APIError

logger = structlog.get_logger(__name__)


class AnthropicProviderError(Exception):
    """Anthropic rejected or failed the request"""


class AnthropicChatClient:
    def __init__(
        self,
        api_key: Optional[str],
        default_model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 8192,
        timeout: float = 120.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.default_model = default_model
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise AnthropicProviderError("Anthropic API key not configured")
            self._client = AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Run one message call and return the concatenated text blocks.

        Prompt files name OpenRouter models; only ``claude-*`` names are honoured
        here, anything else falls back to the configured Anthropic model.
        """
        if not model or not model.startswith("claude"):
            model = self.default_model

        kwargs = {
            "model": model,
            "max_tokens": max_tokens or self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = min(temperature, 1.0)

        try:
            response = await self.client.messages.create(**kwargs)
        except APIError as e:
            raise AnthropicProviderError(f"Anthropic API error: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        if not text.strip():
            raise AnthropicProviderError("Anthropic returned an empty completion")
        return text
