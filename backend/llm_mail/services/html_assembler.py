"""
HTML Assembly Adapter
Turns copy, brand style and image placeholders into one HTML email document
"""
import re
from typing import List, Optional, Sequence

import structlog

from llm_mail.models.campaign import BrandStyle, GeneratedImage, HtmlResult
from llm_mail.services.content_generator import PROVIDER_ERRORS, ChatClient
from llm_mail.services.prompt_store import PromptStore

logger = structlog.get_logger(__name__)

DEFAULT_STYLE = BrandStyle(
    primaryColor="#6366f1",
    accentColor="#ec4899",
    backgroundColor="#ffffff",
    headingFont="Arial, sans-serif",
    bodyFont="Arial, sans-serif",
)

CODE_FENCE = re.compile(r"```[a-zA-Z]*")
DOCUMENT_START = re.compile(r"<!doctype|<html", re.IGNORECASE)
PLACEHOLDER_PATTERN = re.compile(r"\[IMAGE_(\d+)\]")


def placeholder_token(position: int) -> str:
    """Token for the 1-based ``position``-th image"""
    return f"[IMAGE_{position}]"


def clean_html_output(raw: Optional[str]) -> str:
    """
    Reduce raw model text to the HTML document it contains.

    Drops code fences, any preamble before the first ``<!doctype``/``<html``
    and anything after the last ``</html>``. Returns "" when no document
    start is present.
    """
    if not raw:
        return ""

    html = CODE_FENCE.sub("", raw)

    start = DOCUMENT_START.search(html)
    if not start:
        return ""
    html = html[start.start():]

    end = html.lower().rfind("</html>")
    if end != -1:
        html = html[:end + len("</html>")]

    return html.strip()


def describe_images(images: Sequence[GeneratedImage]) -> str:
    if not images:
        return "No images are available. Do not add img tags for content imagery."
    return "\n".join(f"{image.placeholder}: {image.prompt}" for image in images)


def substitute_image_placeholders(html: str, images: Sequence[GeneratedImage]) -> str:
    """Replace every ``[IMAGE_n]`` token with the URL of its generated image"""
    for image in images:
        html = html.replace(image.placeholder, image.url)
    return html


def unresolved_placeholders(html: str) -> List[str]:
    return sorted(set(match.group(0) for match in PLACEHOLDER_PATTERN.finditer(html)))


class HtmlAssembler:
    def __init__(self, chat_client: ChatClient, prompt_store: PromptStore):
        self.chat_client = chat_client
        self.prompt_store = prompt_store

    async def assemble(
        self,
        content_text: str,
        brand_style: BrandStyle,
        images: Sequence[GeneratedImage],
        logo_url: Optional[str] = None,
    ) -> HtmlResult:
        """
        Ask the model for the full HTML document and clean its output.

        Image placeholders are left in place; substitution happens afterwards.
        """
        style = brand_style.merged_over(DEFAULT_STYLE)
        definition = self.prompt_store.load("email_html_generation")
        user_prompt = self.prompt_store.build("email_html_generation", {
            "content": content_text,
            "images": describe_images(images),
            "primaryColor": style.primaryColor,
            "accentColor": style.accentColor,
            "backgroundColor": style.backgroundColor,
            "headingFont": style.headingFont,
            "bodyFont": style.bodyFont,
            "brandVoice": style.brandVoice,
            "logoUrl": logo_url,
        })

        try:
            raw = await self.chat_client.complete(
                system_prompt=definition.system_prompt,
                user_prompt=user_prompt,
                model=definition.settings.model,
                temperature=definition.settings.temperature,
                response_format=definition.settings.response_format,
            )
        except PROVIDER_ERRORS as e:
            logger.error("HTML assembly call failed", error=str(e))
            return HtmlResult(success=False, error=str(e))

        html = clean_html_output(raw)
        if not html:
            logger.error("HTML assembly returned no document", preview=raw[:200])
            return HtmlResult(
                success=False,
                error=f"Model response did not contain an HTML document. Preview: {raw[:200]}",
            )

        logger.info("HTML assembled", size=len(html))
        return HtmlResult(success=True, html=html)
