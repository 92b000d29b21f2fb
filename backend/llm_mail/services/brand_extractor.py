"""
Brand Extractor
Best-effort extraction of colors, fonts and voice from creative brief text
"""
import re
from typing import List, Optional

from llm_mail.models.campaign import BrandStyle

HEX_PATTERN = re.compile(r"#([0-9a-fA-F]{6}|[0-9a-fA-F]{3})\b")

# Label, optional markdown emphasis/colon decoration, optional '#', hex digits
LABELED_COLOR = r"{label}\s*(?:colou?r)?[*_\s]*[:=][*_\s]*#?([0-9a-fA-F]{{6}}|[0-9a-fA-F]{{3}})\b"
LABELED_TEXT = r"^[\s>*_#\-\d.]*(?:{label})[*_\s]*:[*_\s]*(.+)$"

COLOR_LABELS = {
    "primaryColor": r"primary",
    "accentColor": r"accent",
    "backgroundColor": r"background",
}


def normalize_hex(value: str) -> str:
    """Return ``#rrggbb`` for a 3- or 6-digit hex code (with or without '#')"""
    digits = value.lstrip("#").lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def _find_labeled_color(text: str, label: str) -> Optional[str]:
    pattern = re.compile(LABELED_COLOR.format(label=label), re.IGNORECASE)
    match = pattern.search(text)
    return normalize_hex(match.group(1)) if match else None


def _find_labeled_text(text: str, label: str) -> Optional[str]:
    pattern = re.compile(LABELED_TEXT.format(label=label), re.IGNORECASE | re.MULTILINE)
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip().strip("*_`\"'").strip()
    value = value.rstrip(".;,").strip()
    return value or None


def find_hex_colors(text: str) -> List[str]:
    """All hex codes in document order, normalized"""
    return [normalize_hex(match.group(1)) for match in HEX_PATTERN.finditer(text)]


def extract_brand_style(text: Optional[str]) -> BrandStyle:
    """
    Extract a BrandStyle from free text.

    Labeled colors win; missing ones are filled positionally from the unlabeled
    hex codes (1st -> primary, 2nd -> accent, 3rd -> background). Never raises.
    """
    if not text:
        return BrandStyle()

    colors = {field: _find_labeled_color(text, label) for field, label in COLOR_LABELS.items()}

    seen = {value for value in colors.values() if value}
    unlabeled = []
    for value in find_hex_colors(text):
        if value not in seen:
            seen.add(value)
            unlabeled.append(value)

    for position, field in enumerate(COLOR_LABELS):
        if colors[field] is None and position < len(unlabeled):
            colors[field] = unlabeled[position]

    return BrandStyle(
        **colors,
        headingFont=_find_labeled_text(text, r"heading\s+font|headline\s+font"),
        bodyFont=_find_labeled_text(text, r"body\s+font"),
        brandVoice=_find_labeled_text(text, r"brand\s+voice|tone(?:\s+of\s+voice)?"),
    )
