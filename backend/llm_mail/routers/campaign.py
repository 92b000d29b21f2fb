"""
Campaign generation router
One-shot JSON endpoints and their server-sent-events streaming variants
"""
from typing import Optional

import asyncpg
import structlog
from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from llm_mail.models.campaign import (
    CampaignResult,
    ClientProfile,
    GenerateCampaignRequest,
    RefineCampaignRequest,
)
from llm_mail.services.database import DatabaseService
from llm_mail.services.dependencies import get_database, get_orchestrator
from llm_mail.services.orchestrator import CampaignOrchestrator
from llm_mail.services.progress_channel import ProgressChannel

logger = structlog.get_logger(__name__)

router = APIRouter()


async def resolve_brand_profile(
    body: GenerateCampaignRequest,
    database: Optional[DatabaseService],
) -> Optional[ClientProfile]:
    """Inline profile first, then the saved one when the caller allows it"""
    if body.brandProfile is not None:
        return body.brandProfile
    if not body.useSavedProfile or database is None or not database.is_healthy:
        return None
    try:
        return await database.get_client_profile()
    except asyncpg.PostgresError as e:
        logger.warning("Could not load saved client profile", error=str(e))
        return None


def _logo_url(look_and_feel) -> Optional[str]:
    return look_and_feel.logoUrl if look_and_feel else None


def _brand_defaults(look_and_feel):
    return look_and_feel.to_brand_style() if look_and_feel else None


@router.post("/generate-campaign", response_model=CampaignResult)
async def generate_campaign(
    body: GenerateCampaignRequest,
    orchestrator: CampaignOrchestrator = Depends(get_orchestrator),
    database: Optional[DatabaseService] = Depends(get_database),
):
    """Run the full pipeline and return the terminal result"""
    logger.info("Campaign generation requested", prompt=body.prompt[:80])
    profile = await resolve_brand_profile(body, database)
    return await orchestrator.generate_campaign(
        body.prompt,
        brand_defaults=_brand_defaults(body.lookAndFeel),
        brand_profile=profile,
        recommendation_seed=body.recommendationSeed,
        logo_url=_logo_url(body.lookAndFeel),
    )


@router.post("/generate-campaign/stream")
async def generate_campaign_stream(
    request: Request,
    body: GenerateCampaignRequest,
    orchestrator: CampaignOrchestrator = Depends(get_orchestrator),
    database: Optional[DatabaseService] = Depends(get_database),
):
    """
    Same pipeline, streamed as SSE.

    One event per stage (``event`` is the stage tag); the stream ends with
    ``complete``, ``requires_settings``, ``needs_clarification`` or ``error``.
    """
    logger.info("Streaming campaign generation requested", prompt=body.prompt[:80])
    profile = await resolve_brand_profile(body, database)
    channel = ProgressChannel()
    work = orchestrator.generate_campaign(
        body.prompt,
        brand_defaults=_brand_defaults(body.lookAndFeel),
        brand_profile=profile,
        on_progress=channel.publish,
        recommendation_seed=body.recommendationSeed,
        logo_url=_logo_url(body.lookAndFeel),
    )
    return EventSourceResponse(channel.stream(work, request.is_disconnected))


@router.post("/refine-campaign", response_model=CampaignResult)
async def refine_campaign(
    body: RefineCampaignRequest,
    orchestrator: CampaignOrchestrator = Depends(get_orchestrator),
):
    """Continue a campaign with the caller's answers to clarification questions"""
    return await orchestrator.refine_campaign(
        body.originalBrief,
        body.answers,
        brand_defaults=_brand_defaults(body.lookAndFeel),
        recommendation_seed=body.recommendationSeed,
        logo_url=_logo_url(body.lookAndFeel),
    )


@router.post("/refine-campaign/stream")
async def refine_campaign_stream(
    request: Request,
    body: RefineCampaignRequest,
    orchestrator: CampaignOrchestrator = Depends(get_orchestrator),
):
    channel = ProgressChannel()
    work = orchestrator.refine_campaign(
        body.originalBrief,
        body.answers,
        brand_defaults=_brand_defaults(body.lookAndFeel),
        on_progress=channel.publish,
        recommendation_seed=body.recommendationSeed,
        logo_url=_logo_url(body.lookAndFeel),
    )
    return EventSourceResponse(channel.stream(work, request.is_disconnected))
