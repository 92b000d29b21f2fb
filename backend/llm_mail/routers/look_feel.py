"""
Look & Feel presets router (brand defaults reused across campaigns)
"""
import asyncpg
from fastapi import APIRouter, Depends, HTTPException

from llm_mail.models.library import (
    ListLookAndFeelResponse,
    LookAndFeel,
    SavedResponse,
    SaveLookAndFeelRequest,
)
from llm_mail.services.database import DatabaseService
from llm_mail.services.dependencies import require_database

router = APIRouter()


@router.get("/look-feel", response_model=ListLookAndFeelResponse)
async def list_look_and_feel(database: DatabaseService = Depends(require_database)):
    rows = await database.list_look_and_feel()
    return ListLookAndFeelResponse(templates=[LookAndFeel(**row) for row in rows])


@router.post("/look-feel", response_model=SavedResponse)
async def save_look_and_feel(
    request: SaveLookAndFeelRequest,
    database: DatabaseService = Depends(require_database),
):
    try:
        template_id = await database.create_look_and_feel(request)
    except asyncpg.UniqueViolationError:
        raise HTTPException(status_code=409, detail=f"A look & feel named '{request.name}' already exists")
    return SavedResponse(templateId=template_id, message="Look & Feel template saved successfully")
