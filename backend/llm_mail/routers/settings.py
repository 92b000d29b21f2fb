"""
Client profile router (the brand profile the creative director works from)
"""
from typing import Optional

import asyncpg
import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from llm_mail.models.campaign import ClientProfile
from llm_mail.models.library import ScanWebsiteRequest, WebsiteScanResult
from llm_mail.services.content_generator import render_brand_profile
from llm_mail.services.database import DatabaseService
from llm_mail.services.dependencies import get_database, get_website_scanner, require_database
from llm_mail.services.website_scanner import WebsiteScanner

logger = structlog.get_logger(__name__)

router = APIRouter()


class ProfileResponse(BaseModel):
    success: bool = True
    configured: bool
    profile: Optional[ClientProfile] = None


@router.get("/settings/profile", response_model=ProfileResponse)
async def get_profile(database: DatabaseService = Depends(require_database)):
    profile = await database.get_client_profile()
    return ProfileResponse(configured=render_brand_profile(profile) is not None, profile=profile)


@router.put("/settings/profile", response_model=ProfileResponse)
async def save_profile(profile: ClientProfile, database: DatabaseService = Depends(require_database)):
    """Merge the submitted fields into the stored profile"""
    saved = await database.upsert_client_profile(profile)
    logger.info("Client profile updated", website_url=saved.website_url if saved else None)
    return ProfileResponse(configured=render_brand_profile(saved) is not None, profile=saved)


@router.post("/settings/scan", response_model=WebsiteScanResult)
async def scan_website(
    request: ScanWebsiteRequest,
    scanner: WebsiteScanner = Depends(get_website_scanner),
    database: Optional[DatabaseService] = Depends(get_database),
):
    """
    Build the client profile from a website and store it when the database is
    available. The scanned profile is returned either way.
    """
    result = await scanner.scan(request.url)
    if not result.success:
        return JSONResponse(status_code=502, content={"success": False, "error": result.error})

    if database is None or not database.is_healthy:
        logger.warning("Website scanned but not saved, database unavailable", url=request.url)
        return result

    try:
        saved = await database.upsert_client_profile(result.profile)
    except asyncpg.PostgresError as e:
        logger.error("Could not save scanned profile", error=str(e))
        return result
    logger.info("Scanned profile saved", website_url=saved.website_url)
    return result.model_copy(update={"profile": saved, "saved": True})
