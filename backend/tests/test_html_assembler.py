import asyncio

from llm_mail.config import PACKAGE_DIR
from llm_mail.models.campaign import BrandStyle, GeneratedImage
from llm_mail.services.html_assembler import (
    HtmlAssembler,
    clean_html_output,
    substitute_image_placeholders,
    unresolved_placeholders,
)
from llm_mail.services.prompt_store import PromptStore

DOCUMENT = "<!DOCTYPE html>\n<html><head></head><body><p>Hi <%${user['FirstName']}%></p></body></html>"


def images():
    return [
        GeneratedImage(url="/generated-images/a.png", prompt="beach", placeholder="[IMAGE_1]"),
        GeneratedImage(url="https://cdn.example.com/b.png", prompt="hat", placeholder="[IMAGE_2]"),
    ]


def test_clean_html_output_unwraps_fenced_document():
    raw = f"Sure! Here is your email:\n\n```html\n{DOCUMENT}\n```\n\nLet me know if you need changes."

    assert clean_html_output(raw) == DOCUMENT


def test_clean_html_output_accepts_bare_html_tag_and_lowercase_doctype():
    assert clean_html_output("  <html><body>x</body></html>  ") == "<html><body>x</body></html>"
    assert clean_html_output("intro <!doctype html><html></html> outro") == "<!doctype html><html></html>"


def test_clean_html_output_without_document_is_empty():
    assert clean_html_output("I cannot help with that.") == ""
    assert clean_html_output("```\n<div>fragment</div>\n```") == ""
    assert clean_html_output("") == ""
    assert clean_html_output(None) == ""


def test_clean_html_output_keeps_unterminated_document():
    assert clean_html_output("```html\n<!DOCTYPE html><html><body>cut off") == "<!DOCTYPE html><html><body>cut off"


def test_substitute_image_placeholders():
    html = '<img src="[IMAGE_1]"><img src="[IMAGE_2]"><img src="[IMAGE_9]">'

    result = substitute_image_placeholders(html, images())

    assert result == '<img src="/generated-images/a.png"><img src="https://cdn.example.com/b.png"><img src="[IMAGE_9]">'
    assert unresolved_placeholders(result) == ["[IMAGE_9]"]


def test_assemble_builds_prompt_and_cleans_output(fake_chat):
    chat = fake_chat(f"```html\n{DOCUMENT}\n```")
    assembler = HtmlAssembler(chat, PromptStore(PACKAGE_DIR / "prompts"))

    result = asyncio.run(assembler.assemble(
        "Subject: Hello",
        BrandStyle(primaryColor="#112233", headingFont="Georgia"),
        images(),
        logo_url="https://cdn.example.com/logo.png",
    ))

    assert result.success
    assert result.html == DOCUMENT
    call = chat.calls[0]
    assert call["temperature"] == 0.5
    assert "[IMAGE_1]: beach" in call["user_prompt"]
    assert "[IMAGE_2]: hat" in call["user_prompt"]
    assert "Primary color: #112233" in call["user_prompt"]
    # defaults fill what the brand style leaves empty
    assert "Accent color (CTA only): #ec4899" in call["user_prompt"]
    assert "Heading font: Georgia" in call["user_prompt"]
    assert "https://cdn.example.com/logo.png" in call["user_prompt"]
    assert "<%${user['FirstName']}%>" in call["system_prompt"]


def test_assemble_fails_closed(fake_chat, provider_error):
    store = PromptStore(PACKAGE_DIR / "prompts")

    rejected = asyncio.run(HtmlAssembler(fake_chat(provider_error), store).assemble("copy", BrandStyle(), []))
    assert not rejected.success
    assert "rate limit" in rejected.error
    assert rejected.html is None

    no_document = asyncio.run(HtmlAssembler(fake_chat("Sorry, no."), store).assemble("copy", BrandStyle(), []))
    assert not no_document.success
    assert "Sorry, no." in no_document.error
