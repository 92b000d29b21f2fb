"""
OpenRouter API Client
Handles chat completions and image generation via OpenRouter
"""
import asyncio
from typing import Optional, Dict, Any, List

import httpx
import structlog

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS = (500, 502, 503, 504)


class OpenRouterError(Exception):
    """Upstream rejected or failed the request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _error_for_status(response: httpx.Response) -> OpenRouterError:
    status = response.status_code
    if status == 401:
        return OpenRouterError("OpenRouter API key is invalid or expired", status)
    if status == 402:
        return OpenRouterError("OpenRouter account has insufficient credits", status)
    if status == 429:
        return OpenRouterError("OpenRouter rate limit exceeded. Please try again later", status)
    if status == 413:
        return OpenRouterError("Request too large for OpenRouter", status)

    detail = response.text[:200]
    try:
        detail = response.json().get("error", {}).get("message") or detail
    except (ValueError, AttributeError):
        pass
    return OpenRouterError(f"OpenRouter API error ({status}): {detail}", status)


def _message_text(message: Dict[str, Any]) -> str:
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(part.get("text", "") for part in content if isinstance(part, dict))
    return ""


class OpenRouterClient:
    """
    Thin async client for the OpenRouter chat completions endpoint.

    ``http_client`` is optional; when omitted a client is opened per call.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        default_model: str = "openai/gpt-4o",
        timeout: float = 120.0,
        max_tokens: int = 8192,
        max_retries: int = 0,
        app_url: str = "http://localhost:8000",
        app_title: str = "LLM-Mail",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.app_url = app_url
        self.app_title = app_title
        self._http_client = http_client

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.app_url,
            "X-Title": self.app_title,
        }

    async def _send(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            f"{self.base_url}/chat/completions",
            json=payload,
            headers=self.headers,
            timeout=self.timeout,
        )

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise OpenRouterError("OpenRouter API key not configured")

        attempt = 0
        while True:
            try:
                if self._http_client is not None:
                    response = await self._send(self._http_client, payload)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        response = await self._send(client, payload)
            except httpx.TimeoutException as e:
                if attempt < self.max_retries:
                    attempt += 1
                    logger.warning("OpenRouter timeout, retrying", attempt=attempt, model=payload.get("model"))
                    await asyncio.sleep(0.5 * attempt)
                    continue
                raise OpenRouterError(f"OpenRouter request timed out: {e}") from e
            except httpx.HTTPError as e:
                raise OpenRouterError(f"OpenRouter request failed: {e}") from e

            if response.status_code in RETRYABLE_STATUS and attempt < self.max_retries:
                attempt += 1
                logger.warning("OpenRouter server error, retrying",
                               attempt=attempt, status_code=response.status_code)
                await asyncio.sleep(0.5 * attempt)
                continue

            if not response.is_success:
                raise _error_for_status(response)

            try:
                return response.json()
            except ValueError as e:
                raise OpenRouterError(f"OpenRouter returned invalid JSON: {response.text[:200]}") from e

    @staticmethod
    def _first_message(data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise OpenRouterError(f"OpenRouter error: {message}")
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise OpenRouterError("OpenRouter response contained no choices")
        return choices[0].get("message") or {}

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
        Run one chat completion and return the assistant text

        Raises:
            OpenRouterError on any provider failure or empty response
        """
        payload: Dict[str, Any] = {
            "model": model or self.default_model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if response_format:
            payload["response_format"] = response_format

        data = await self._post(payload)
        text = _message_text(self._first_message(data))
        if not text.strip():
            raise OpenRouterError("OpenRouter returned an empty completion")
        return text

    async def generate_image(
        self,
        prompt: str,
        model: str,
        aspect_ratio: str = "1:1",
    ) -> Dict[str, Optional[str]]:
        """
        Generate one image

        Returns:
            Dict with ``imageUrl`` (hosted or ``data:`` URL) and ``text`` (any
            accompanying model text, used as the revised prompt)
        """
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
            "image_config": {"aspect_ratio": aspect_ratio},
        }

        data = await self._post(payload)
        message = self._first_message(data)
        text = _message_text(message).strip() or None

        # Check message.images array (OpenRouter format for image models)
        images: List[Dict[str, Any]] = message.get("images") or []
        for image in images:
            url = (image.get("image_url") or {}).get("url")
            if url:
                return {"imageUrl": url, "text": text}

        # Alternative: content array with image parts
        content = message.get("content")
        if isinstance(content, list):
            for part in content:
                if isinstance(part, dict) and part.get("type") == "image_url":
                    url = (part.get("image_url") or {}).get("url")
                    if url:
                        return {"imageUrl": url, "text": text}

        # Gemini-style inline data parts
        for part in message.get("parts") or []:
            inline = part.get("inline_data") or {}
            if inline.get("data") and inline.get("mime_type"):
                return {"imageUrl": f"data:{inline['mime_type']};base64,{inline['data']}", "text": text}

        if isinstance(content, str) and content.startswith("data:image/"):
            return {"imageUrl": content.strip(), "text": None}

        raise OpenRouterError("No image found in response. The model may not have generated an image.")
