import pytest

from llm_mail.models.campaign import BrandStyle
from llm_mail.services.brand_extractor import extract_brand_style, find_hex_colors, normalize_hex


@pytest.mark.parametrize("text", [
    "",
    None,
    "No colors here at all.",
    "#zzzzzz #12 #1234567 primary: nope",
    "Primary: #FF5733 primary: #000000 PRIMARY COLOR = #123456",
    " ".join(f"#{i:06x}" for i in range(50)),
    "Primary Color:",
])
def test_never_raises_and_returns_single_values(text):
    style = extract_brand_style(text)

    assert isinstance(style, BrandStyle)
    for value in (style.primaryColor, style.accentColor, style.backgroundColor):
        assert value is None or isinstance(value, str)


def test_labeled_colors_win_over_position():
    brief = (
        "Mood board uses #abcdef for highlights.\n"
        "**Primary Color:** #FF5733\n"
        "- Accent color: #0A0\n"
        "Background = #fafafa\n"
    )

    style = extract_brand_style(brief)

    assert style.primaryColor == "#ff5733"
    assert style.accentColor == "#00aa00"
    assert style.backgroundColor == "#fafafa"


def test_unlabeled_colors_fill_missing_fields_in_order():
    style = extract_brand_style("Palette: #111111, #222222, #111111, #333333 and #444444")

    assert style.primaryColor == "#111111"
    assert style.accentColor == "#222222"
    assert style.backgroundColor == "#333333"


def test_positional_fill_skips_colors_already_labeled():
    style = extract_brand_style("Primary: #111111. Other swatches #111111 #999999 #888888")

    # unlabeled matches are #999999 then #888888; accent takes the 2nd
    assert style.primaryColor == "#111111"
    assert style.accentColor == "#888888"
    assert style.backgroundColor is None


def test_fewer_matches_leave_fields_empty():
    style = extract_brand_style("Only one swatch: #123456")

    assert style.primaryColor == "#123456"
    assert style.accentColor is None
    assert style.backgroundColor is None


def test_fonts_and_voice():
    brief = (
        "## Typography\n"
        "- **Heading Font:** Playfair Display\n"
        "- Body font: Inter, sans-serif\n"
        "Tone of voice: warm, witty and confident.\n"
    )

    style = extract_brand_style(brief)

    assert style.headingFont == "Playfair Display"
    assert style.bodyFont == "Inter, sans-serif"
    assert style.brandVoice == "warm, witty and confident"


def test_hex_helpers():
    assert normalize_hex("#AbC") == "#aabbcc"
    assert normalize_hex("FF5733") == "#ff5733"
    assert find_hex_colors("a #fff b #123456 c #12345") == ["#ffffff", "#123456"]
