"""
Content Generation Adapter
Creative brief analysis, brief refinement and copy generation
"""
import json
import re
from typing import Any, Dict, List, Mapping, Optional, Protocol

import structlog

from llm_mail.models.campaign import BriefResult, ClarificationQuestion, ClientProfile, CopyResult
from llm_mail.services.anthropic_client import AnthropicProviderError
from llm_mail.services.openrouter_client import OpenRouterError
from llm_mail.services.prompt_store import PromptStore

logger = structlog.get_logger(__name__)

PROVIDER_ERRORS = (OpenRouterError, AnthropicProviderError)

SETTINGS_REQUIRED_MARKER = "SETTINGS_REQUIRED"
CLARIFICATION_MARKER = "CLARIFICATION_NEEDED"
SETTINGS_MISSING_PHRASE = re.compile(r"company settings (?:are )?not configured", re.IGNORECASE)
QUESTION_LINE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+?)\s*$")

PROFILE_SECTIONS = (
    ("corporate_identity", "Corporate Identity"),
    ("tone_of_voice", "Tone of Voice"),
    ("content_guidelines", "Content Guidelines"),
    ("email_config", "Email Configuration"),
    ("contact_info", "Contact Information"),
    ("compliance", "Compliance"),
)


class ChatClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, str]] = None,
    ) -> str:
        ...


def detect_settings_required(brief_text: str) -> bool:
    """True when the creative director reports a missing brand profile"""
    return SETTINGS_REQUIRED_MARKER in brief_text or bool(SETTINGS_MISSING_PHRASE.search(brief_text))


def extract_clarification_questions(brief_text: str) -> Optional[List[ClarificationQuestion]]:
    """
    Questions listed after a CLARIFICATION_NEEDED line.

    Returns None when the marker is absent or no question follows it.
    """
    lines = brief_text.splitlines()
    for index, line in enumerate(lines):
        if line.strip().strip("*#_ ").upper() == CLARIFICATION_MARKER:
            break
    else:
        return None

    questions = []
    for line in lines[index + 1:]:
        if not line.strip():
            if questions:
                break
            continue
        match = QUESTION_LINE.match(line)
        if not match:
            break
        questions.append(ClarificationQuestion(key=f"q{len(questions) + 1}", question=match.group(1)))

    return questions or None


def _format_section(value: Any) -> str:
    if isinstance(value, dict):
        return "\n".join(f"- {key}: {item}" for key, item in value.items() if item not in (None, "", [], {}))
    return str(value)


def render_brand_profile(profile: Optional[ClientProfile]) -> Optional[str]:
    """Narrative markdown for the brand profile, or None when nothing is configured"""
    if profile is None:
        return None
    if profile.full_scan_markdown and profile.full_scan_markdown.strip():
        return profile.full_scan_markdown.strip()

    sections = []
    for attribute, title in PROFILE_SECTIONS:
        value = getattr(profile, attribute)
        if value:
            sections.append(f"## {title}\n{_format_section(value)}")
    return "\n\n".join(sections) or None


def build_brief_context(user_prompt: str, profile: Optional[ClientProfile]) -> str:
    context = f'User Request: "{user_prompt}"\n\n'

    narrative = render_brand_profile(profile)
    if narrative:
        context += "=== BRAND PROFILE & STYLE GUIDE ===\n"
        context += f"{narrative}\n"
        context += "=== END BRAND PROFILE ===\n\n"
        if profile.website_url:
            context += f"Brand Website: {profile.website_url}\n\n"
        context += (
            "IMPORTANT: Use the brand information above to ensure the campaign aligns with the "
            "brand's colors, typography, tone of voice, and visual style.\n"
        )
    else:
        context += "\nCompany settings are not configured. User needs to set up their profile first.\n"

    return context


class ContentGenerator:
    """Single-shot chat calls; every method fails closed with a tagged result"""

    def __init__(self, chat_client: ChatClient, prompt_store: PromptStore):
        self.chat_client = chat_client
        self.prompt_store = prompt_store

    async def _run(self, prompt_name: str, user_prompt: str) -> str:
        definition = self.prompt_store.load(prompt_name)
        return await self.chat_client.complete(
            system_prompt=definition.system_prompt,
            user_prompt=user_prompt,
            model=definition.settings.model,
            temperature=definition.settings.temperature,
            response_format=definition.settings.response_format,
        )

    async def analyze_brief(self, user_prompt: str, brand_profile: Optional[ClientProfile] = None) -> BriefResult:
        logger.info("Creative director analyzing request", has_profile=brand_profile is not None)
        try:
            brief_text = await self._run("creative_director", build_brief_context(user_prompt, brand_profile))
        except PROVIDER_ERRORS as e:
            logger.error("Creative director call failed", error=str(e))
            return BriefResult(success=False, error=str(e))

        logger.info("Creative director analysis complete", preview=brief_text[:200])
        return BriefResult(success=True, briefText=brief_text)

    async def refine_brief(self, original_brief: str, user_answers: Mapping[str, Any]) -> BriefResult:
        logger.info("Refining brief with user answers", answers=len(user_answers))
        refinement_prompt = (
            f"Original Brief:\n{original_brief}\n\n"
            f"User's Answers to Clarifying Questions:\n{json.dumps(dict(user_answers), indent=2, ensure_ascii=False)}\n\n"
            "Based on the user's answers, refine and enhance the original brief. "
            "Make it more specific and targeted."
        )
        try:
            brief_text = await self._run("creative_director", refinement_prompt)
        except PROVIDER_ERRORS as e:
            logger.error("Brief refinement failed", error=str(e))
            return BriefResult(success=False, error=str(e))

        return BriefResult(success=True, briefText=brief_text)

    async def generate_copy_from_brief(self, brief_text: str) -> CopyResult:
        logger.info("Generating content from brief")
        try:
            user_prompt = self.prompt_store.build("email_content_generation", {"brief": brief_text})
            content_text = await self._run("email_content_generation", user_prompt)
        except PROVIDER_ERRORS as e:
            logger.error("Content generation failed", error=str(e))
            return CopyResult(success=False, error=str(e))

        return CopyResult(success=True, contentText=content_text)
