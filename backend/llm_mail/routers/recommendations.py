"""
Dressipi proxy router
"""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from llm_mail.services.dependencies import get_dressipi_client
from llm_mail.services.dressipi_client import DressipiClient, DressipiError, normalize_recommendations

logger = structlog.get_logger(__name__)

router = APIRouter()

RESERVED_PARAMS = ("itemId", "domain", "customerName")


@router.get("/dressipi/related")
async def related_items(
    request: Request,
    itemId: Optional[str] = None,
    domain: Optional[str] = None,
    customerName: Optional[str] = None,
    dressipi: DressipiClient = Depends(get_dressipi_client),
):
    """
    Related items for a seed product. Query parameters other than itemId,
    domain and customerName are forwarded to Dressipi unchanged.
    """
    if not itemId or not itemId.strip():
        raise HTTPException(status_code=400, detail="itemId query parameter is required")
    if not (domain and domain.strip()) and not (customerName and customerName.strip()):
        raise HTTPException(
            status_code=400,
            detail="Provide either customerName or domain to call the Dressipi API",
        )

    query_options = {
        key: value
        for key, value in request.query_params.items()
        if key not in RESERVED_PARAMS and value != ""
    }

    try:
        payload = await dressipi.fetch_related(
            itemId.strip(),
            domain=domain.strip() if domain else None,
            customer_name=customerName.strip() if customerName else None,
            query_options=query_options,
        )
    except DressipiError as e:
        logger.warning("Dressipi proxy request failed", item_id=itemId, error=str(e))
        return JSONResponse(status_code=502, content={"success": False, "error": str(e)})

    return {
        "success": True,
        "data": payload,
        "recommendations": normalize_recommendations(payload).model_dump(),
    }
