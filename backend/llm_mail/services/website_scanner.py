"""
Website Scanner
Builds a brand profile from a company website in two analysis passes:

    content   - visible text -> narrative profile, voice, contact details
    technical - HTML, stylesheets and header/nav images -> logo, colors, fonts

Both passes run concurrently; technical facts win where the two overlap.
"""
import asyncio
import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup

from llm_mail.models.campaign import ClientProfile
from llm_mail.models.library import WebsiteScanResult
from llm_mail.services.content_generator import PROVIDER_ERRORS, ChatClient, render_brand_profile
from llm_mail.services.prompt_store import PromptStore

logger = structlog.get_logger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

MAX_STYLESHEETS = 10
MAX_HTML_CHARS = 60000
MAX_CSS_CHARS = 60000
MAX_TEXT_CHARS = 20000

LOGO_SELECTOR = "header img, nav img, header svg, nav svg"
PROFILE_FIELDS = (
    "corporate_identity",
    "tone_of_voice",
    "contact_info",
    "email_config",
    "content_guidelines",
    "compliance",
)
JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class WebsiteScanError(Exception):
    """The site could not be fetched or an analysis pass failed"""


def normalize_site_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise WebsiteScanError("A website URL is required")
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    return url


def _unique(urls: List[str]) -> List[str]:
    unique = []
    for url in urls:
        if url not in unique:
            unique.append(url)
    return unique


def find_logo_candidates(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Absolute URLs of images and svg sprites in the header and navigation"""
    candidates = []
    for element in soup.select(LOGO_SELECTOR):
        src = element.get("src")
        if not src:
            use = element.find("use")
            if use is not None:
                src = use.get("xlink:href") or use.get("href")
        if src:
            candidates.append(urljoin(base_url, src.strip()))
    return _unique(candidates)


def find_stylesheet_urls(soup: BeautifulSoup, base_url: str) -> List[str]:
    urls = [
        urljoin(base_url, link["href"].strip())
        for link in soup.find_all("link", rel="stylesheet")
        if link.get("href")
    ]
    return _unique(urls)[:MAX_STYLESHEETS]


def visible_text(soup: BeautifulSoup) -> str:
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    text = soup.get_text(separator="\n", strip=True)
    return text[:MAX_TEXT_CHARS]


def parse_json_object(raw: str, pass_name: str) -> Dict[str, Any]:
    """Parse a model reply that should be one JSON object, code fences allowed"""
    text = JSON_FENCE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except ValueError as e:
        raise WebsiteScanError(
            f"The {pass_name} analysis did not return valid JSON. Preview: {text[:200]}"
        ) from e
    if not isinstance(data, dict):
        raise WebsiteScanError(f"The {pass_name} analysis returned {type(data).__name__}, expected an object")
    return data


def merge_analyses(content: Dict[str, Any], technical: Dict[str, Any]) -> Dict[str, Any]:
    """Merge section by section; non-empty technical values replace content values"""
    merged = dict(content)
    for key, value in technical.items():
        if value in (None, "", [], {}):
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            section = dict(merged[key])
            section.update({k: v for k, v in value.items() if v not in (None, "", [], {})})
            merged[key] = section
        else:
            merged[key] = value
    return merged


def build_profile(url: str, data: Dict[str, Any], logo_candidates: List[str]) -> ClientProfile:
    sections = {
        field: data[field]
        for field in PROFILE_FIELDS
        if isinstance(data.get(field), dict) and data[field]
    }
    identity = sections.get("corporate_identity")
    if logo_candidates and not (identity or {}).get("logoUrl"):
        sections["corporate_identity"] = dict(identity or {}, logoUrl=logo_candidates[0])

    profile = ClientProfile(website_url=url, **sections)
    markdown = data.get("full_scan_markdown")
    if not isinstance(markdown, str) or not markdown.strip():
        markdown = render_brand_profile(profile)
    return profile.model_copy(update={"full_scan_markdown": markdown})


class WebsiteScanner:
    def __init__(
        self,
        chat_client: ChatClient,
        prompt_store: PromptStore,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        stylesheet_timeout: float = 5.0,
        user_agent: str = BROWSER_USER_AGENT,
    ):
        self.chat_client = chat_client
        self.prompt_store = prompt_store
        self._http_client = http_client
        self.timeout = timeout
        self.stylesheet_timeout = stylesheet_timeout
        self.headers = {"User-Agent": user_agent}

    async def _get(self, client: httpx.AsyncClient, url: str, timeout: float) -> httpx.Response:
        response = await client.get(url, headers=self.headers, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
        return response

    async def _fetch_stylesheet(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            return (await self._get(client, url, self.stylesheet_timeout)).text
        except httpx.HTTPError as e:
            logger.warning("Skipping stylesheet", url=url, error=str(e))
            return ""

    async def _analyze(self, prompt_name: str, pass_name: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        definition = self.prompt_store.load(prompt_name)
        user_prompt = self.prompt_store.build(prompt_name, variables)
        try:
            raw = await self.chat_client.complete(
                system_prompt=definition.system_prompt,
                user_prompt=user_prompt,
                model=definition.settings.model,
                temperature=definition.settings.temperature,
                response_format=definition.settings.response_format,
            )
        except PROVIDER_ERRORS as e:
            raise WebsiteScanError(f"The {pass_name} analysis failed: {e}") from e
        return parse_json_object(raw, pass_name)

    async def _scan(self, client: httpx.AsyncClient, url: str) -> WebsiteScanResult:
        try:
            response = await self._get(client, url, self.timeout)
        except httpx.HTTPStatusError as e:
            raise WebsiteScanError(f"Website returned {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            raise WebsiteScanError(f"Could not fetch {url}: {e}") from e

        base_url = str(response.url)
        html = response.text
        soup = BeautifulSoup(html, "html.parser")

        logos = find_logo_candidates(soup, base_url)
        stylesheets = find_stylesheet_urls(soup, base_url)
        title = soup.title.get_text(strip=True) if soup.title else ""
        meta = soup.find("meta", attrs={"name": "description"})
        description = meta.get("content", "").strip() if meta else ""
        logger.info("Fetched website", url=base_url, logos=len(logos), stylesheets=len(stylesheets))

        css = "\n".join(await asyncio.gather(
            *(self._fetch_stylesheet(client, sheet) for sheet in stylesheets)
        ))

        content, technical = await asyncio.gather(
            self._analyze("website_content_analysis", "content", {
                "url": base_url,
                "title": title,
                "description": description,
                "text": visible_text(soup),
            }),
            self._analyze("technical_style_extraction", "technical", {
                "url": base_url,
                "logos": "\n".join(logos) or "(none found)",
                "html": html[:MAX_HTML_CHARS],
                "css": css[:MAX_CSS_CHARS] or "(no stylesheets)",
            }),
        )

        data = merge_analyses(content, technical)
        profile = build_profile(url, data, logos)
        return WebsiteScanResult(success=True, profile=profile, data=data, logoCandidates=logos)

    async def scan(self, url: str) -> WebsiteScanResult:
        """
        Scan ``url`` and build a ClientProfile from it.

        Fails closed: fetch, provider and parse failures come back as
        ``success=False`` with the reason.
        """
        try:
            url = normalize_site_url(url)
            logger.info("Scanning website", url=url)
            if self._http_client is not None:
                return await self._scan(self._http_client, url)
            async with httpx.AsyncClient() as client:
                return await self._scan(client, url)
        except WebsiteScanError as e:
            logger.error("Website scan failed", url=url, error=str(e))
            return WebsiteScanResult(success=False, error=str(e))
