"""
Storage Service
Persists generated images to local disk or S3
"""
import base64
import binascii
import re
import uuid
from pathlib import Path
from typing import Optional, Tuple

import boto3
import structlog

from llm_mail.config import Settings

logger = structlog.get_logger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


class InvalidImageDataError(ValueError):
    pass


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def data_url_to_bytes(data_url: str) -> Tuple[bytes, str]:
    """
    Convert data URL to bytes

    Args:
        data_url: Data URL (data:image/png;base64,...)

    Returns:
        (image bytes, mime type)
    """
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise InvalidImageDataError("Unsupported data URL, expected base64 image data")
    try:
        return base64.b64decode(match.group(2), validate=False), match.group(1)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageDataError(f"Invalid base64 image data: {e}") from e


class ImageStorage:
    """
    Writes images under ``generated_images_dir`` with random names and returns
    their relative URL, or uploads them to S3 when it is configured.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.images_dir = Path(settings.generated_images_dir)
        self.url_prefix = settings.generated_images_url_prefix.rstrip("/")

    def _upload_to_s3(self, content: bytes, filename: str, mime_type: str) -> str:
        s3_client = boto3.client(
            "s3",
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            region_name=self.settings.aws_region
        )
        s3_client.put_object(
            Bucket=self.settings.aws_s3_bucket,
            Key=f"generated-images/{filename}",
            Body=content,
            ContentType=mime_type
        )
        return f"{self.settings.s3_base_url.rstrip('/')}/generated-images/{filename}"

    def save_image_bytes(self, content: bytes, mime_type: str = "image/png", filename: Optional[str] = None) -> str:
        """Persist image bytes and return the URL they are served from"""
        extension = EXTENSIONS.get(mime_type, "png")
        filename = filename or f"{uuid.uuid4().hex}.{extension}"

        if self.settings.is_s3_configured:
            url = self._upload_to_s3(content, filename, mime_type)
            logger.info("Uploaded generated image to S3", filename=filename, size=len(content))
            return url

        self.images_dir.mkdir(parents=True, exist_ok=True)
        (self.images_dir / filename).write_bytes(content)
        logger.info("Stored generated image", filename=filename, size=len(content))
        return f"{self.url_prefix}/{filename}"

    def save_data_url(self, data_url: str) -> str:
        content, mime_type = data_url_to_bytes(data_url)
        return self.save_image_bytes(content, mime_type)
