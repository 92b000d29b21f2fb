"""
Service construction for FastAPI ``Depends``

Every service is built from ``Settings`` here and handed to the routers, so
tests can swap any of them through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Optional, Union

from fastapi import Depends, HTTPException, Request

from llm_mail.config import Settings, settings
from llm_mail.services.anthropic_client import AnthropicChatClient
from llm_mail.services.content_generator import ContentGenerator
from llm_mail.services.database import DatabaseService
from llm_mail.services.dressipi_client import DressipiClient
from llm_mail.services.html_assembler import HtmlAssembler
from llm_mail.services.image_generator import ImageGenerator
from llm_mail.services.openrouter_client import OpenRouterClient
from llm_mail.services.orchestrator import CampaignOrchestrator
from llm_mail.services.prompt_store import PromptStore
from llm_mail.services.storage_service import ImageStorage
from llm_mail.services.website_scanner import WebsiteScanner


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=None)
def _prompt_store(prompts_dir: str) -> PromptStore:
    return PromptStore(prompts_dir)


def get_prompt_store(config: Settings = Depends(get_settings)) -> PromptStore:
    return _prompt_store(str(config.prompts_dir))


def get_openrouter_client(config: Settings = Depends(get_settings)) -> OpenRouterClient:
    return OpenRouterClient(
        api_key=config.openrouter_api_key,
        base_url=config.openrouter_base_url,
        default_model=config.chat_model,
        timeout=config.llm_timeout_seconds,
        max_tokens=config.llm_max_tokens,
        max_retries=config.provider_max_retries,
        app_url=config.base_url,
    )


def get_chat_client(
    config: Settings = Depends(get_settings),
    openrouter: OpenRouterClient = Depends(get_openrouter_client),
) -> Union[OpenRouterClient, AnthropicChatClient]:
    if config.llm_provider == "anthropic":
        return AnthropicChatClient(
            api_key=config.anthropic_api_key,
            default_model=config.anthropic_model,
            max_tokens=config.llm_max_tokens,
            timeout=config.llm_timeout_seconds,
        )
    return openrouter


def get_image_generator(
    config: Settings = Depends(get_settings),
    openrouter: OpenRouterClient = Depends(get_openrouter_client),
) -> ImageGenerator:
    return ImageGenerator(openrouter, ImageStorage(config), config.image_model)


def get_dressipi_client(config: Settings = Depends(get_settings)) -> DressipiClient:
    return DressipiClient(timeout=config.dressipi_timeout_seconds, user_agent=config.dressipi_user_agent)


def get_website_scanner(
    chat_client=Depends(get_chat_client),
    prompt_store: PromptStore = Depends(get_prompt_store),
    config: Settings = Depends(get_settings),
) -> WebsiteScanner:
    return WebsiteScanner(chat_client, prompt_store, timeout=config.website_scan_timeout_seconds)


def get_orchestrator(
    chat_client=Depends(get_chat_client),
    prompt_store: PromptStore = Depends(get_prompt_store),
    image_generator: ImageGenerator = Depends(get_image_generator),
    dressipi: DressipiClient = Depends(get_dressipi_client),
) -> CampaignOrchestrator:
    return CampaignOrchestrator(
        content_generator=ContentGenerator(chat_client, prompt_store),
        image_generator=image_generator,
        html_assembler=HtmlAssembler(chat_client, prompt_store),
        recommendation_client=dressipi,
    )


def get_database(request: Request) -> Optional[DatabaseService]:
    """Database service created by the application lifespan, if any"""
    return getattr(request.app.state, "database", None)


def require_database(database: Optional[DatabaseService] = Depends(get_database)) -> DatabaseService:
    if database is None or not database.is_healthy:
        raise HTTPException(status_code=503, detail="Database is not available")
    return database
