"""
Image Generation Adapter
Wraps a single text-to-image call and returns a stable URL for the result
"""
import asyncio
from typing import Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from llm_mail.models.campaign import ImageGenerationResult
from llm_mail.services.openrouter_client import OpenRouterClient, OpenRouterError
from llm_mail.services.storage_service import ImageStorage, InvalidImageDataError, is_data_url

logger = structlog.get_logger(__name__)


def aspect_ratio_for(width: int, height: int) -> str:
    """Nearest aspect ratio supported by the image model"""
    if not width or not height:
        return "1:1"
    ratio = width / height
    if ratio >= 1.7:
        return "16:9"
    elif ratio >= 1.4:
        return "3:2"
    elif ratio >= 1.2:
        return "4:3"
    elif ratio <= 0.6:
        return "9:16"
    elif ratio <= 0.7:
        return "2:3"
    elif ratio <= 0.85:
        return "3:4"
    return "1:1"


class ImageGenerator:
    def __init__(self, client: OpenRouterClient, storage: ImageStorage, model: str):
        self.client = client
        self.storage = storage
        self.model = model

    async def generate(
        self,
        prompt: str,
        width: int = 1200,
        height: int = 600,
        style: Optional[str] = None,
    ) -> ImageGenerationResult:
        """
        Generate one image for ``prompt``.

        Inline (``data:``) results are persisted through ImageStorage; hosted
        URLs are returned untouched. Never raises for provider failures.
        """
        request_prompt = f"Generate an image: {prompt}"
        if style:
            request_prompt += f". Style: {style}"
        request_prompt += ". Suitable for email marketing, no text or lettering in the image."

        try:
            response = await self.client.generate_image(
                request_prompt,
                model=self.model,
                aspect_ratio=aspect_ratio_for(width, height),
            )
        except OpenRouterError as e:
            logger.warning("Image generation rejected", error=str(e), prompt=prompt[:80])
            return ImageGenerationResult(success=False, originalPrompt=prompt, error=str(e))

        image_url = response["imageUrl"]
        if is_data_url(image_url):
            try:
                image_url = await asyncio.to_thread(self.storage.save_data_url, image_url)
            except (InvalidImageDataError, OSError, BotoCoreError, ClientError) as e:
                logger.error("Failed to persist generated image", error=str(e))
                return ImageGenerationResult(success=False, originalPrompt=prompt, error=f"Failed to store image: {e}")

        logger.info("Image generated", url=image_url)
        return ImageGenerationResult(
            success=True,
            imageUrl=image_url,
            revisedPrompt=response.get("text") or prompt,
            originalPrompt=prompt,
        )
