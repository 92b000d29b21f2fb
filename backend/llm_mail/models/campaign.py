"""
Pydantic models for campaign generation
"""
from typing import Optional, List, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# Brand & content models

class BrandStyle(BaseModel):
    """Resolved visual parameters applied to HTML assembly"""
    primaryColor: Optional[str] = None
    accentColor: Optional[str] = None
    backgroundColor: Optional[str] = None
    headingFont: Optional[str] = None
    bodyFont: Optional[str] = None
    brandVoice: Optional[str] = None

    def merged_over(self, defaults: Optional["BrandStyle"]) -> "BrandStyle":
        """Return defaults overridden by every non-empty field of this style"""
        base = defaults.model_dump() if defaults else {}
        for key, value in self.model_dump().items():
            if value:
                base[key] = value
        return BrandStyle(**base)


class LookAndFeelInput(BaseModel):
    """Caller-supplied brand defaults (look & feel preset)"""
    brandColor: Optional[str] = None
    accentColor: Optional[str] = None
    backgroundColor: Optional[str] = None
    fontFamily: Optional[str] = None
    headingFont: Optional[str] = None
    logoUrl: Optional[str] = None

    def to_brand_style(self) -> BrandStyle:
        return BrandStyle(
            primaryColor=self.brandColor,
            accentColor=self.accentColor,
            backgroundColor=self.backgroundColor,
            headingFont=self.headingFont or self.fontFamily,
            bodyFont=self.fontFamily,
        )


class ClientProfile(BaseModel):
    """
    Brand profile consumed by the creative director.

    ``full_scan_markdown`` is the narrative form; the structured fields are the
    older variant and are rendered to markdown when no narrative is stored.
    """
    website_url: Optional[str] = None
    full_scan_markdown: Optional[str] = None
    corporate_identity: Optional[Dict[str, Any]] = None
    tone_of_voice: Optional[Dict[str, Any]] = None
    contact_info: Optional[Dict[str, Any]] = None
    email_config: Optional[Dict[str, Any]] = None
    content_guidelines: Optional[Dict[str, Any]] = None
    compliance: Optional[Dict[str, Any]] = None


class GeneratedImage(BaseModel):
    url: str
    prompt: str
    revisedPrompt: Optional[str] = None
    placeholder: str


class EmailContent(BaseModel):
    """Summary fields parsed from the generated copy"""
    subject: str
    preheader: str
    headline: str
    body: str
    cta: str
    ctaUrl: str
    footer: str


class ClarificationQuestion(BaseModel):
    key: str
    question: str


# Recommendation models

class RecommendationItem(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[str] = None
    imageUrl: Optional[str] = None
    productUrl: Optional[str] = None
    sku: Optional[str] = None


class RecommendationSet(BaseModel):
    seedItem: Optional[RecommendationItem] = None
    items: List[RecommendationItem] = []
    error: Optional[str] = None
    seedDetailError: Optional[str] = None


class RecommendationSeed(BaseModel):
    """Which product to query related items for, and on which Dressipi host"""
    itemId: str = Field(..., min_length=1)
    domain: Optional[str] = None
    customerName: Optional[str] = None
    queryOptions: Dict[str, str] = {}


# Adapter results (tagged: check success before reading payload fields)

class BriefResult(BaseModel):
    success: bool
    briefText: Optional[str] = None
    error: Optional[str] = None


class CopyResult(BaseModel):
    success: bool
    contentText: Optional[str] = None
    error: Optional[str] = None


class HtmlResult(BaseModel):
    success: bool
    html: Optional[str] = None
    error: Optional[str] = None


class ImageGenerationResult(BaseModel):
    success: bool
    imageUrl: Optional[str] = None
    revisedPrompt: Optional[str] = None
    originalPrompt: Optional[str] = None
    error: Optional[str] = None


# Terminal result

CampaignStatus = Literal["complete", "requires_settings", "needs_clarification", "error"]


class CampaignResult(BaseModel):
    """Terminal aggregate of one generation request"""
    model_config = ConfigDict(frozen=True)

    success: bool
    status: CampaignStatus
    content: Optional[EmailContent] = None
    contentText: Optional[str] = None
    html: Optional[str] = None
    images: List[GeneratedImage] = []
    brief: Optional[str] = None
    brandStyle: Optional[BrandStyle] = None
    recommendations: Optional[RecommendationSet] = None
    requiresSettings: bool = False
    needsClarification: bool = False
    questions: List[ClarificationQuestion] = []
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str, brief: Optional[str] = None) -> "CampaignResult":
        return cls(success=False, status="error", error=error, brief=brief)


class ProgressEvent(BaseModel):
    """One progress notification emitted by the orchestrator"""
    stage: str
    message: str = ""
    data: Optional[Dict[str, Any]] = None
    result: Optional[CampaignResult] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES


TERMINAL_STAGES = ("complete", "error", "requires_settings", "needs_clarification")


# API request models

class GenerateCampaignRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    lookAndFeel: Optional[LookAndFeelInput] = None
    recommendationSeed: Optional[RecommendationSeed] = None
    brandProfile: Optional[ClientProfile] = None
    useSavedProfile: bool = True


class RefineCampaignRequest(BaseModel):
    originalBrief: str = Field(..., min_length=1)
    answers: Dict[str, Any]
    lookAndFeel: Optional[LookAndFeelInput] = None
    recommendationSeed: Optional[RecommendationSeed] = None


class GenerateImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    width: int = 1024
    height: int = 1024
    style: str = "professional"
