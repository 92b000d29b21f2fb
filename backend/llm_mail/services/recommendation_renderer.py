"""
Recommendation block rendering
Email-safe (table based, inline styled) product cards and document injection
"""
import re
from html import escape
from typing import Optional

from llm_mail.models.campaign import BrandStyle, RecommendationItem, RecommendationSet

MAX_CARDS = 3
DEFAULT_PRIMARY = "#111111"
DEFAULT_ACCENT = "#c0392b"
DEFAULT_FONT = "Arial, sans-serif"

BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<a href="{escape(url)}" style="display:inline-block;padding:10px 18px;'
        f'background-color:{color};color:#ffffff;text-decoration:none;'
        f'border-radius:4px;font-weight:bold;font-size:14px;">{escape(label)}</a>'
    )


def _item_lines(item: RecommendationItem, accent: str, name_size: int) -> str:
    lines = []
    if item.name:
        lines.append(
            f'<p style="margin:8px 0 4px;font-size:{name_size}px;font-weight:bold;">{escape(item.name)}</p>'
        )
    if item.price:
        lines.append(f'<p style="margin:0 0 4px;font-size:14px;color:{accent};">{escape(item.price)}</p>')
    if item.sku:
        lines.append(f'<p style="margin:0 0 8px;font-size:11px;color:#888888;">SKU: {escape(item.sku)}</p>')
    return "".join(lines)


def _image(item: RecommendationItem, width: int) -> str:
    if not item.imageUrl:
        return ""
    return (
        f'<img src="{escape(item.imageUrl)}" alt="{escape(item.name or "")}" width="{width}" '
        f'style="display:block;width:100%;max-width:{width}px;height:auto;border:0;" />'
    )


def render_seed_card(item: RecommendationItem, primary: str, accent: str) -> str:
    cell = _image(item, 560) + _item_lines(item, accent, 18)
    if item.productUrl:
        cell += _button(item.productUrl, "Shop this look", primary)
    return (
        '<tr><td style="padding:0 0 24px;text-align:center;">'
        f'<p style="margin:0 0 12px;font-size:12px;letter-spacing:1px;text-transform:uppercase;color:{accent};">'
        "Your pick</p>"
        f"{cell}</td></tr>"
    )


def render_item_card(item: RecommendationItem, primary: str, accent: str, width: str) -> str:
    cell = _image(item, 180) + _item_lines(item, accent, 14)
    if item.productUrl:
        cell += _button(item.productUrl, "Shop now", primary)
    return (
        f'<td valign="top" width="{width}" style="padding:8px;text-align:center;'
        f'border:1px solid {accent};">{cell}</td>'
    )


def render_recommendations_html(rec_set: Optional[RecommendationSet], brand_style: Optional[BrandStyle] = None) -> str:
    """
    Self-contained HTML fragment with the seed item and up to three related items.

    Returns "" when there is neither a seed item nor any related item.
    """
    if rec_set is None:
        return ""
    items = rec_set.items[:MAX_CARDS]
    if rec_set.seedItem is None and not items:
        return ""

    style = brand_style or BrandStyle()
    primary = style.primaryColor or DEFAULT_PRIMARY
    accent = style.accentColor or DEFAULT_ACCENT
    font = style.bodyFont or DEFAULT_FONT

    rows = []
    if rec_set.seedItem is not None:
        rows.append(render_seed_card(rec_set.seedItem, primary, accent))
    if items:
        width = f"{100 // len(items)}%"
        cards = "".join(render_item_card(item, primary, accent, width) for item in items)
        rows.append(
            '<tr><td><p style="margin:0 0 12px;font-size:18px;font-weight:bold;text-align:center;">'
            "You may also like</p>"
            '<table role="presentation" width="100%" cellpadding="0" cellspacing="0" border="0">'
            f"<tr>{cards}</tr></table></td></tr>"
        )

    return (
        '<table role="presentation" width="100%" cellpadding="0" cellspacing="0" border="0" '
        f'style="max-width:600px;margin:0 auto;font-family:{font};">'
        f'<tr><td style="padding:24px 16px;"><table role="presentation" width="100%" '
        f'cellpadding="0" cellspacing="0" border="0">{"".join(rows)}</table></td></tr></table>'
    )


def inject_before_body_close(html: str, fragment: str) -> str:
    """Insert ``fragment`` before the last ``</body>``, or append it when there is none"""
    matches = list(BODY_CLOSE.finditer(html))
    if not matches:
        return f"{html}\n{fragment}"
    position = matches[-1].start()
    return f"{html[:position]}{fragment}\n{html[position:]}"
