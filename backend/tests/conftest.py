import os
import tempfile
from typing import Any, Dict, List, Optional

import pytest

os.environ.setdefault("GENERATED_IMAGES_DIR", tempfile.mkdtemp(prefix="llm-mail-images-"))
os.environ.setdefault("OPENROUTER_API_KEY", "test-key")

from llm_mail.config import Settings  # noqa: E402
from llm_mail.services.openrouter_client import OpenRouterError  # noqa: E402


class FakeChatClient:
    """Chat client returning queued responses; an Exception instance in the queue is raised"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, str]] = None,
    ) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "model": model,
            "temperature": temperature,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_chat():
    return FakeChatClient


@pytest.fixture
def provider_error():
    return OpenRouterError("OpenRouter rate limit exceeded. Please try again later", 429)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        openrouter_api_key="test-key",
        generated_images_dir=tmp_path / "images",
        aws_s3_bucket=None,
    )
