import asyncio
import json

import pytest

from llm_mail.config import PACKAGE_DIR
from llm_mail.models.campaign import ClientProfile
from llm_mail.services.content_generator import (
    ContentGenerator,
    build_brief_context,
    detect_settings_required,
    extract_clarification_questions,
    render_brand_profile,
)
from llm_mail.services.prompt_store import PromptStore, TemplateNotFoundError


@pytest.fixture
def store():
    return PromptStore(PACKAGE_DIR / "prompts")


def test_detect_settings_required():
    assert detect_settings_required("SETTINGS_REQUIRED\nPlease configure your brand profile.")
    assert detect_settings_required("Company settings are not configured, so I cannot brief this.")
    assert not detect_settings_required("CAMPAIGN BRIEF\nPrimary color: #ff0000")


def test_clarification_questions():
    brief = (
        "**CLARIFICATION_NEEDED**\n"
        "- Which products are on sale?\n"
        "- What is the discount?\n"
        "\n"
        "Partial brief: summer sale for returning customers."
    )

    questions = extract_clarification_questions(brief)

    assert [q.key for q in questions] == ["q1", "q2"]
    assert questions[1].question == "What is the discount?"


def test_clarification_marker_without_questions_is_ignored():
    assert extract_clarification_questions("CLARIFICATION_NEEDED\n\nJust a brief.") is None
    assert extract_clarification_questions("A normal brief with - dashes") is None


def test_render_brand_profile_prefers_narrative():
    assert render_brand_profile(None) is None
    assert render_brand_profile(ClientProfile()) is None
    assert render_brand_profile(ClientProfile(full_scan_markdown="  # Acme\nBold.  ")) == "# Acme\nBold."

    structured = render_brand_profile(ClientProfile(
        corporate_identity={"name": "Acme", "colors": "#ff0000", "tagline": ""},
        tone_of_voice={"style": "playful"},
    ))
    assert structured == "## Corporate Identity\n- name: Acme\n- colors: #ff0000\n\n## Tone of Voice\n- style: playful"


def test_build_brief_context():
    with_profile = build_brief_context(
        "Summer sale", ClientProfile(full_scan_markdown="Acme sells hats.", website_url="https://acme.test")
    )
    assert with_profile.startswith('User Request: "Summer sale"')
    assert "=== BRAND PROFILE & STYLE GUIDE ===\nAcme sells hats.\n=== END BRAND PROFILE ===" in with_profile
    assert "Brand Website: https://acme.test" in with_profile

    without_profile = build_brief_context("Summer sale", None)
    assert "Company settings are not configured" in without_profile
    assert "BRAND PROFILE" not in without_profile


def test_analyze_brief_uses_creative_director_prompt(fake_chat, store):
    chat = fake_chat("CAMPAIGN BRIEF ...")
    generator = ContentGenerator(chat, store)

    result = asyncio.run(generator.analyze_brief("Summer sale", ClientProfile(full_scan_markdown="Acme")))

    assert result.success
    assert result.briefText == "CAMPAIGN BRIEF ..."
    assert chat.calls[0]["temperature"] == 0.8
    assert "SETTINGS_REQUIRED" in chat.calls[0]["system_prompt"]
    assert "Acme" in chat.calls[0]["user_prompt"]


def test_refine_brief_serializes_answers(fake_chat, store):
    chat = fake_chat("Refined brief")
    answers = {"q1": "Hats and sandals", "q2": "25%"}

    result = asyncio.run(ContentGenerator(chat, store).refine_brief("Original brief", answers))

    assert result.success
    assert result.briefText == "Refined brief"
    assert "Original Brief:\nOriginal brief" in chat.calls[0]["user_prompt"]
    assert json.dumps(answers, indent=2) in chat.calls[0]["user_prompt"]


def test_generate_copy_embeds_brief(fake_chat, store):
    chat = fake_chat("Subject: Hi")

    result = asyncio.run(ContentGenerator(chat, store).generate_copy_from_brief("THE BRIEF"))

    assert result.success
    assert result.contentText == "Subject: Hi"
    assert "THE BRIEF" in chat.calls[0]["user_prompt"]
    assert chat.calls[0]["temperature"] == 0.7


def test_every_operation_fails_closed(fake_chat, store, provider_error):
    generator = ContentGenerator(fake_chat(provider_error, provider_error, provider_error), store)

    brief = asyncio.run(generator.analyze_brief("x"))
    refined = asyncio.run(generator.refine_brief("x", {}))
    copy = asyncio.run(generator.generate_copy_from_brief("x"))

    for result in (brief, refined, copy):
        assert not result.success
        assert result.error == "OpenRouter rate limit exceeded. Please try again later"
    assert brief.briefText is None
    assert copy.contentText is None


def test_template_errors_propagate(fake_chat, tmp_path):
    generator = ContentGenerator(fake_chat("unused"), PromptStore(tmp_path))

    with pytest.raises(TemplateNotFoundError):
        asyncio.run(generator.analyze_brief("x"))
