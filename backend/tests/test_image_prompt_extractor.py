import pytest

from llm_mail.services.image_prompt_extractor import (
    FALLBACK_IMAGE_PROMPT,
    MAX_IMAGE_PROMPTS,
    extract_image_prompts,
)


def test_no_markers_returns_exact_fallback():
    prompts = extract_image_prompts("Create a summer sale email with a friendly tone.")

    assert prompts == [
        "Professional email marketing photography, high quality, brand-aligned aesthetic, clean composition"
    ]
    assert prompts == [FALLBACK_IMAGE_PROMPT]


@pytest.mark.parametrize("text", ["", None, "IMAGE_PROMPT_START   IMAGE_PROMPT_END", "IMAGE_PROMPT_START unterminated"])
def test_degenerate_input_falls_back(text):
    assert extract_image_prompts(text) == [FALLBACK_IMAGE_PROMPT]


def test_delimited_prompts_in_document_order():
    brief = (
        "Visuals:\n"
        "IMAGE_PROMPT_START\nSunlit beach with striped towels\nIMAGE_PROMPT_END\n"
        "IMAGE_PROMPT_START  \nIMAGE_PROMPT_END\n"
        "IMAGE_PROMPT_START Close-up of linen shirt on a wooden hanger IMAGE_PROMPT_END\n"
        "Image 3: Prompt: ignored because delimiters win\n"
    )

    assert extract_image_prompts(brief) == [
        "Sunlit beach with striped towels",
        "Close-up of linen shirt on a wooden hanger",
    ]


def test_results_are_capped():
    brief = "\n".join(f"IMAGE_PROMPT_START prompt {i} IMAGE_PROMPT_END" for i in range(1, 6))

    prompts = extract_image_prompts(brief)

    assert len(prompts) == MAX_IMAGE_PROMPTS
    assert prompts == ["prompt 1", "prompt 2", "prompt 3"]


def test_heading_with_label_on_following_lines():
    brief = (
        "## Hero Image\n"
        "Placement: top of email\n"
        "**Prompt:** A woman walking on a sunny boardwalk,\n"
        "pastel tones, soft morning light\n"
        "\n"
        "### Image 2\n"
        "Description: Flat lay of sandals and sunglasses\n"
        "\n"
        "Product Image - Prompt: \"Straw hat on white background\"\n"
    )

    assert extract_image_prompts(brief) == [
        "A woman walking on a sunny boardwalk, pastel tones, soft morning light",
        "Flat lay of sandals and sunglasses",
        "Straw hat on white background",
    ]


def test_heading_without_label_is_ignored():
    brief = "Hero Image\nshould feel warm\n\n\n\nPrompt: too far away"

    assert extract_image_prompts(brief) == [FALLBACK_IMAGE_PROMPT]
