"""
Email content parser
Maps labeled sections of generated copy onto EmailContent fields
"""
import re
from typing import Dict, List, Optional, Tuple

from llm_mail.models.campaign import EmailContent

FALLBACK_CONTENT = {
    "subject": "Your Exclusive Offer Inside",
    "preheader": "Don't miss what we have in store for you",
    "headline": "Something Special Awaits",
    "body": "",
    "cta": "Shop Now",
    "ctaUrl": "#",
    "footer": "You are receiving this email because you subscribed to our updates.",
}

# Longer labels first so "CTA URL" is not read as "CTA"
FIELD_LABELS: List[Tuple[str, str]] = [
    ("ctaUrl", r"cta\s+(?:url|link)|button\s+(?:url|link)"),
    ("subject", r"subject(?:\s+line)?"),
    ("preheader", r"preheader(?:\s+text)?|preview\s+text"),
    ("headline", r"headline"),
    ("body", r"body(?:\s+copy)?"),
    ("cta", r"cta(?:\s+text)?|call[\s-]+to[\s-]+action"),
    ("footer", r"footer(?:\s+text)?"),
]

LINE_PATTERN = re.compile(
    r"^[\s>#*_\-\d.)]*(?P<label>" + "|".join(f"(?:{p})" for _, p in FIELD_LABELS) + r")[*_\s]*:[*_\s]*(?P<rest>.*)$",
    re.IGNORECASE,
)


def _field_for(label: str) -> Optional[str]:
    for field, pattern in FIELD_LABELS:
        if re.fullmatch(pattern, label.strip(), re.IGNORECASE):
            return field
    return None


def _clean(value: str) -> str:
    value = value.strip()
    value = re.sub(r"^\*+|\*+$", "", value).strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1].strip()
    return value


def parse_email_content(text: Optional[str]) -> EmailContent:
    """
    Parse ``Subject:``/``Preheader:``/... sections out of free-text copy.

    A section runs from its label to the next recognized label. Missing or
    empty sections get fixed fallback values.
    """
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in (text or "").splitlines():
        match = LINE_PATTERN.match(line)
        field = _field_for(match.group("label")) if match else None
        if field:
            current = field
            # First occurrence wins
            if field in sections:
                current = None
                continue
            sections[field] = [match.group("rest")]
        elif current:
            sections[current].append(line)

    values = dict(FALLBACK_CONTENT)
    for field, lines in sections.items():
        joined = "\n".join(lines).strip()
        if field in ("body", "footer"):
            value = "\n".join(_clean(line) for line in joined.splitlines()).strip()
        else:
            value = _clean(" ".join(part.strip() for part in joined.splitlines() if part.strip()))
        if value:
            values[field] = value

    return EmailContent(**values)
