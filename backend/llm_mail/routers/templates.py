"""
Saved email templates router
"""
import asyncpg
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from llm_mail.models.library import (
    EmailTemplate,
    EmailTemplateSummary,
    ListTemplatesResponse,
    SavedResponse,
    SaveTemplateRequest,
    TemplateResponse,
    UpdateTemplateRequest,
)
from llm_mail.services.database import DatabaseService
from llm_mail.services.dependencies import require_database

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/templates", response_model=SavedResponse)
async def save_template(
    request: SaveTemplateRequest,
    database: DatabaseService = Depends(require_database),
):
    """Save a generated email under a unique name"""
    try:
        template_id = await database.create_template(request)
    except asyncpg.UniqueViolationError:
        raise HTTPException(status_code=409, detail=f"A template named '{request.name}' already exists")
    return SavedResponse(templateId=template_id, message="Template saved successfully")


@router.get("/templates", response_model=ListTemplatesResponse)
async def list_templates(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    database: DatabaseService = Depends(require_database),
):
    rows = await database.list_templates(limit=limit, offset=offset)
    return ListTemplatesResponse(templates=[EmailTemplateSummary(**row) for row in rows])


@router.get("/templates/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: int, database: DatabaseService = Depends(require_database)):
    row = await database.get_template(template_id)
    if not row:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateResponse(template=EmailTemplate(**row))


@router.put("/templates/{template_id}", response_model=SavedResponse)
async def update_template(
    template_id: int,
    request: UpdateTemplateRequest,
    database: DatabaseService = Depends(require_database),
):
    try:
        updated = await database.update_template(template_id, request)
    except asyncpg.UniqueViolationError:
        raise HTTPException(status_code=409, detail=f"A template named '{request.name}' already exists")
    if not updated:
        raise HTTPException(status_code=404, detail="Template not found")
    logger.info("Updated email template", template_id=template_id)
    return SavedResponse(templateId=template_id, message="Template updated successfully")


@router.delete("/templates/{template_id}", response_model=SavedResponse)
async def delete_template(template_id: int, database: DatabaseService = Depends(require_database)):
    if not await database.delete_template(template_id):
        raise HTTPException(status_code=404, detail="Template not found")
    return SavedResponse(templateId=template_id, message="Template deleted successfully")
