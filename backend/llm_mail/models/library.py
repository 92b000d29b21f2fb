"""
Saved email templates, look & feel presets and the client profile
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from llm_mail.models.campaign import ClientProfile, LookAndFeelInput


# ============ Request Models ============

class SaveTemplateRequest(BaseModel):
    """Request to save a generated email"""
    name: str = Field(..., min_length=1, description="Unique template name")
    html: str = Field(..., min_length=1, description="Final HTML document")
    description: Optional[str] = None
    subject: Optional[str] = None
    preheader: Optional[str] = None
    userPrompt: Optional[str] = None
    lookAndFeel: Optional[LookAndFeelInput] = None


class UpdateTemplateRequest(BaseModel):
    """Partial update of a saved template"""
    name: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    lookAndFeel: Optional[LookAndFeelInput] = None


class SaveLookAndFeelRequest(BaseModel):
    name: str = Field(..., min_length=1)
    brandColor: str = Field(..., min_length=1)
    accentColor: str = Field(..., min_length=1)
    logoUrl: Optional[str] = None
    fontFamily: Optional[str] = "Arial, sans-serif"


class ScanWebsiteRequest(BaseModel):
    """Website to build the client profile from"""
    url: str = Field(..., min_length=1)


# ============ Response Models ============

class EmailTemplate(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    user_prompt: Optional[str] = None
    subject: Optional[str] = None
    preheader: Optional[str] = None
    html_content: str
    brand_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_url: Optional[str] = None
    font_family: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EmailTemplateSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    subject: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LookAndFeel(BaseModel):
    id: int
    name: str
    brand_color: str
    accent_color: str
    logo_url: Optional[str] = None
    font_family: Optional[str] = None
    created_at: Optional[datetime] = None


class ListTemplatesResponse(BaseModel):
    success: bool = True
    templates: List[EmailTemplateSummary]


class TemplateResponse(BaseModel):
    success: bool = True
    template: EmailTemplate


class ListLookAndFeelResponse(BaseModel):
    success: bool = True
    templates: List[LookAndFeel]


class SavedResponse(BaseModel):
    success: bool = True
    templateId: Optional[int] = None
    message: str


class WebsiteScanResult(BaseModel):
    """Outcome of a website scan; ``data`` is the merged analysis JSON"""
    success: bool
    profile: Optional[ClientProfile] = None
    data: Optional[Dict[str, Any]] = None
    logoCandidates: List[str] = []
    saved: bool = False
    error: Optional[str] = None
