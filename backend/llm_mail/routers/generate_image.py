"""
AI Image generation router
Single image through the image generation adapter (used to regenerate one picture)
"""
from fastapi import APIRouter, Depends

from llm_mail.models.campaign import GenerateImageRequest, ImageGenerationResult
from llm_mail.services.dependencies import get_image_generator
from llm_mail.services.image_generator import ImageGenerator

router = APIRouter()


@router.post("/generate-image", response_model=ImageGenerationResult)
async def generate_image(
    request: GenerateImageRequest,
    image_generator: ImageGenerator = Depends(get_image_generator),
):
    """
    Generate one image. Provider rejections come back as ``success: false``
    with the provider's message rather than as an HTTP error.
    """
    return await image_generator.generate(
        request.prompt,
        width=request.width,
        height=request.height,
        style=request.style,
    )
