"""
Image Prompt Extractor
Pulls text-to-image prompts out of a creative brief
"""
import re
from typing import List, Optional

MAX_IMAGE_PROMPTS = 3

FALLBACK_IMAGE_PROMPT = (
    "Professional email marketing photography, high quality, "
    "brand-aligned aesthetic, clean composition"
)

DELIMITED_PATTERN = re.compile(r"IMAGE_PROMPT_START\s*([\s\S]*?)\s*IMAGE_PROMPT_END")

HEADING_PATTERN = re.compile(r"\b(?:image\s*#?\s*\d+|hero\s+image|product\s+image)\b", re.IGNORECASE)
LABEL_PATTERN = re.compile(r"\b(?:prompt|description)\b[*_\s]*:[*_\s]*(.*)$", re.IGNORECASE)


def _clean(value: str) -> str:
    return value.strip().strip("*_\"'`").strip()


def _extract_delimited(text: str) -> List[str]:
    prompts = []
    for match in DELIMITED_PATTERN.finditer(text):
        inner = match.group(1).strip()
        if inner:
            prompts.append(inner)
    return prompts


def _capture_after_label(lines: List[str], index: int, first: str) -> Optional[str]:
    """Text after a Prompt/Description label plus following lines up to a blank line"""
    parts = [first.strip()] if first.strip() else []
    for line in lines[index + 1:]:
        if not line.strip():
            if parts:
                break
            continue
        if HEADING_PATTERN.search(line) or LABEL_PATTERN.search(line):
            break
        parts.append(line.strip())
    prompt = _clean(" ".join(parts))
    return prompt or None


def _extract_from_headings(text: str) -> List[str]:
    prompts = []
    lines = text.splitlines()
    index = 0
    while index < len(lines):
        line = lines[index]
        if not HEADING_PATTERN.search(line):
            index += 1
            continue

        # Label on the heading line itself ("Hero Image - Prompt: ...")
        label = LABEL_PATTERN.search(line)
        label_index = index
        if not label:
            for offset in range(index + 1, min(index + 4, len(lines))):
                if HEADING_PATTERN.search(lines[offset]):
                    break
                label = LABEL_PATTERN.search(lines[offset])
                if label:
                    label_index = offset
                    break

        if label:
            prompt = _capture_after_label(lines, label_index, label.group(1))
            if prompt:
                prompts.append(prompt)
            index = label_index + 1
        else:
            index += 1
    return prompts


def extract_image_prompts(text: Optional[str]) -> List[str]:
    """
    Return between 1 and 3 image prompts found in ``text``.

    Delimited IMAGE_PROMPT_START/END pairs take priority, then
    "Image N"/"Hero Image"/"Product Image" headings with a Prompt/Description
    label, then a generic stock prompt.
    """
    text = text or ""
    prompts = _extract_delimited(text)
    if not prompts:
        prompts = _extract_from_headings(text)
    if not prompts:
        prompts = [FALLBACK_IMAGE_PROMPT]
    return prompts[:MAX_IMAGE_PROMPTS]
