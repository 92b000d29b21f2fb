"""
Campaign Orchestrator
Runs the generation pipeline stage by stage and reports progress to an optional sink

    analyzing_brief -> extracting_brand -> generating_images -> generating_copy
        -> [fetching_recommendations] -> assembling_html -> complete

with the early exits requires_settings / needs_clarification and an error
outcome reachable from every stage. Refinement replaces analyzing_brief with
refining_brief. Each stage is reported once, on entry.
"""
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

import structlog

from llm_mail.models.campaign import (
    BrandStyle,
    CampaignResult,
    ClientProfile,
    GeneratedImage,
    ProgressEvent,
    RecommendationSeed,
    RecommendationSet,
)
from llm_mail.services.brand_extractor import extract_brand_style
from llm_mail.services.content_generator import (
    ContentGenerator,
    detect_settings_required,
    extract_clarification_questions,
    render_brand_profile,
)
from llm_mail.services.content_parser import parse_email_content
from llm_mail.services.dressipi_client import DressipiClient, DressipiError
from llm_mail.services.html_assembler import (
    HtmlAssembler,
    placeholder_token,
    substitute_image_placeholders,
    unresolved_placeholders,
)
from llm_mail.services.image_generator import ImageGenerator
from llm_mail.services.image_prompt_extractor import extract_image_prompts
from llm_mail.services.recommendation_renderer import inject_before_body_close, render_recommendations_html

logger = structlog.get_logger(__name__)

ProgressSink = Callable[[ProgressEvent], Union[None, Awaitable[None]]]

EMAIL_IMAGE_WIDTH = 1200
EMAIL_IMAGE_HEIGHT = 600


class CampaignOrchestrator:
    def __init__(
        self,
        content_generator: ContentGenerator,
        image_generator: ImageGenerator,
        html_assembler: HtmlAssembler,
        recommendation_client: Optional[DressipiClient] = None,
    ):
        self.content_generator = content_generator
        self.image_generator = image_generator
        self.html_assembler = html_assembler
        self.recommendation_client = recommendation_client

    async def _emit(
        self,
        on_progress: Optional[ProgressSink],
        stage: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
        result: Optional[CampaignResult] = None,
        error: Optional[str] = None,
    ):
        if on_progress is None:
            return
        event = ProgressEvent(stage=stage, message=message, data=data, result=result, error=error)
        try:
            outcome = on_progress(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Progress sink failed", stage=stage, error=str(e))

    async def _fail(self, on_progress: Optional[ProgressSink], error: str) -> CampaignResult:
        logger.error("Campaign generation failed", error=error)
        result = CampaignResult.failed(error or "Unknown error")
        await self._emit(on_progress, "error", "Generation failed", result=result, error=result.error)
        return result

    async def _fetch_recommendations(self, seed: RecommendationSeed) -> RecommendationSet:
        try:
            return await self.recommendation_client.recommendations_for(
                seed.itemId,
                domain=seed.domain,
                customer_name=seed.customerName,
                query_options=seed.queryOptions,
            )
        except (DressipiError, ValueError) as e:
            logger.warning("Recommendation fetch failed, continuing without block", error=str(e))
            return RecommendationSet(error=str(e))

    async def _generate_images(self, prompts: List[str]) -> Union[List[GeneratedImage], str]:
        """Generated images in prompt order, or the first failure's message"""
        images = []
        for position, prompt in enumerate(prompts, start=1):
            result = await self.image_generator.generate(
                prompt, width=EMAIL_IMAGE_WIDTH, height=EMAIL_IMAGE_HEIGHT
            )
            if not result.success:
                return f"Image generation failed: {result.error}"
            images.append(GeneratedImage(
                url=result.imageUrl,
                prompt=prompt,
                revisedPrompt=result.revisedPrompt,
                placeholder=placeholder_token(position),
            ))
        return images

    async def _from_brief(
        self,
        brief_text: str,
        brand_defaults: Optional[BrandStyle],
        on_progress: Optional[ProgressSink],
        recommendation_seed: Optional[RecommendationSeed],
        logo_url: Optional[str],
    ) -> CampaignResult:
        questions = extract_clarification_questions(brief_text)
        if questions:
            result = CampaignResult(
                success=False,
                status="needs_clarification",
                needsClarification=True,
                questions=questions,
                brief=brief_text,
            )
            await self._emit(
                on_progress, "needs_clarification", "A few questions before we continue", result=result
            )
            return result

        await self._emit(
            on_progress, "extracting_brand", "Extracting brand style from brief",
            data={"brief": brief_text},
        )
        brand_style = extract_brand_style(brief_text).merged_over(brand_defaults)
        prompts = extract_image_prompts(brief_text)

        await self._emit(
            on_progress, "generating_images", f"Generating {len(prompts)} image(s)",
            data={"brandStyle": brand_style.model_dump(), "prompts": prompts},
        )
        images = await self._generate_images(prompts)
        if isinstance(images, str):
            return await self._fail(on_progress, images)

        rec_task = None
        if recommendation_seed is not None and self.recommendation_client is not None:
            rec_task = asyncio.create_task(self._fetch_recommendations(recommendation_seed))

        await self._emit(
            on_progress, "generating_copy", "Writing email copy",
            data={"images": [image.model_dump() for image in images]},
        )
        copy = None
        try:
            copy = await self.content_generator.generate_copy_from_brief(brief_text)
        finally:
            if rec_task is not None and (copy is None or not copy.success):
                rec_task.cancel()
        if not copy.success:
            return await self._fail(on_progress, copy.error)
        content = parse_email_content(copy.contentText)
        copy_data = {"contentText": copy.contentText, "content": content.model_dump()}

        recommendations = None
        if rec_task is not None:
            await self._emit(
                on_progress, "fetching_recommendations", "Fetching product recommendations", data=copy_data
            )
            recommendations = await rec_task
            assembly_data = {"recommendations": recommendations.model_dump()}
        else:
            assembly_data = copy_data

        await self._emit(on_progress, "assembling_html", "Assembling HTML email", data=assembly_data)
        assembled = await self.html_assembler.assemble(copy.contentText, brand_style, images, logo_url=logo_url)
        if not assembled.success:
            return await self._fail(on_progress, assembled.error)

        html = substitute_image_placeholders(assembled.html, images)
        leftover = unresolved_placeholders(html)
        if leftover:
            logger.warning("Unresolved image placeholders in email", placeholders=leftover)
        if recommendations is not None and not recommendations.error:
            fragment = render_recommendations_html(recommendations, brand_style)
            if fragment:
                html = inject_before_body_close(html, fragment)

        result = CampaignResult(
            success=True,
            status="complete",
            content=content,
            contentText=copy.contentText,
            html=html,
            images=images,
            brief=brief_text,
            brandStyle=brand_style,
            recommendations=recommendations,
        )
        logger.info("Campaign generated", images=len(images), has_recommendations=recommendations is not None)
        await self._emit(on_progress, "complete", "Email ready", result=result)
        return result

    async def generate_campaign(
        self,
        user_prompt: str,
        brand_defaults: Optional[BrandStyle] = None,
        brand_profile: Optional[ClientProfile] = None,
        on_progress: Optional[ProgressSink] = None,
        recommendation_seed: Optional[RecommendationSeed] = None,
        logo_url: Optional[str] = None,
    ) -> CampaignResult:
        """
        Generate one campaign email from a natural-language request.

        Never raises: every failure ends in a CampaignResult with status "error".
        """
        try:
            await self._emit(on_progress, "analyzing_brief", "Creative director is analyzing your request")

            if render_brand_profile(brand_profile) is None:
                return await self._requires_settings(on_progress)

            brief = await self.content_generator.analyze_brief(user_prompt, brand_profile)
            if not brief.success:
                return await self._fail(on_progress, brief.error)
            if detect_settings_required(brief.briefText):
                return await self._requires_settings(on_progress, brief.briefText)
            return await self._from_brief(
                brief.briefText, brand_defaults, on_progress, recommendation_seed, logo_url
            )
        except Exception as e:
            logger.exception("Unexpected error during campaign generation")
            return await self._fail(on_progress, str(e) or e.__class__.__name__)

    async def refine_campaign(
        self,
        original_brief: str,
        answers: Mapping[str, Any],
        brand_defaults: Optional[BrandStyle] = None,
        on_progress: Optional[ProgressSink] = None,
        recommendation_seed: Optional[RecommendationSeed] = None,
        logo_url: Optional[str] = None,
    ) -> CampaignResult:
        """Continue a campaign that stopped at needs_clarification"""
        try:
            await self._emit(on_progress, "refining_brief", "Refining brief with your answers")
            brief = await self.content_generator.refine_brief(original_brief, answers)
            if not brief.success:
                return await self._fail(on_progress, brief.error)
            return await self._from_brief(
                brief.briefText, brand_defaults, on_progress, recommendation_seed, logo_url
            )
        except Exception as e:
            logger.exception("Unexpected error during campaign refinement")
            return await self._fail(on_progress, str(e) or e.__class__.__name__)

    async def _requires_settings(
        self, on_progress: Optional[ProgressSink], brief_text: Optional[str] = None
    ) -> CampaignResult:
        logger.info("Brand profile missing, stopping before generation")
        result = CampaignResult(
            success=False,
            status="requires_settings",
            requiresSettings=True,
            brief=brief_text,
            error=None,
        )
        await self._emit(
            on_progress, "requires_settings",
            "Company settings are not configured. Set up your brand profile first.",
            result=result,
        )
        return result
