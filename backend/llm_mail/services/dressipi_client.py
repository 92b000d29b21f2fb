"""
Dressipi API Client
Fetches related products for a seed item and normalizes them for rendering
"""
import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from llm_mail.models.campaign import RecommendationItem, RecommendationSet

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "LLM-Mail/1.0 (+https://localhost)"
PREVIEW_LENGTH = 200


class DressipiError(Exception):
    """Recommendation service request failed"""


class DressipiResponseError(DressipiError):
    """Recommendation service answered with something other than JSON"""


def normalize_domain(domain: Optional[str]) -> Optional[str]:
    """
    Strip protocol and trailing slashes, and add the ``www.`` prefix Dressipi
    hosts are served under.

    >>> normalize_domain("https://dressipi.example.com/")
    'www.dressipi.example.com'
    """
    if not domain or not domain.strip():
        return None

    host = re.sub(r"^\s*https?://", "", domain.strip(), flags=re.IGNORECASE)
    host = host.rstrip("/")

    if re.match(r"^dressipi\.", host, re.IGNORECASE):
        host = f"www.{host}"
    elif not re.match(r"^www\.", host, re.IGNORECASE) and ".dressipi." in host.lower():
        host = f"www.{host}"
    return host


def resolve_base_url(domain: Optional[str] = None, customer_name: Optional[str] = None) -> str:
    normalized = normalize_domain(domain)
    if normalized:
        return f"https://{normalized}"
    if customer_name and customer_name.strip():
        return f"https://www.dressipi.{customer_name.strip()}.com"
    raise ValueError("Either domain or customerName must be provided")


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _format_price(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        amount = _first(value, "formatted", "value", "amount")
        currency = value.get("currency")
        if amount is None:
            return None
        return f"{currency} {amount}" if currency and not isinstance(amount, str) else str(amount)
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _image_url(data: Dict[str, Any]) -> Optional[str]:
    value = _first(data, "image_url", "images", "image", "imageUrl", "thumbnail")
    if isinstance(value, list):
        value = value[0]
    if isinstance(value, dict):
        value = _first(value, "url", "src", "image_url")
    return str(value) if value else None


def normalize_item(data: Dict[str, Any]) -> RecommendationItem:
    """Map one garment record onto the fields the renderer understands"""
    item_id = _first(data, "garment_id", "id", "item_id")
    sku = _first(data, "sku", "product_code", "style_code")
    return RecommendationItem(
        id=str(item_id) if item_id is not None else None,
        name=_first(data, "name", "title", "garment_name"),
        price=_format_price(_first(data, "price", "current_price", "sale_price", "price_formatted")),
        imageUrl=_image_url(data),
        productUrl=_first(data, "url", "product_url", "link", "productUrl"),
        sku=str(sku) if sku is not None else None,
    )


def _seed_record(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    detail = payload.get("seed_detail")
    if isinstance(detail, dict):
        garments = detail.get("garment_data")
        if isinstance(garments, list) and garments and isinstance(garments[0], dict):
            return garments[0]
        return detail
    source = payload.get("source")
    return source if isinstance(source, dict) and source else None


def normalize_recommendations(payload: Dict[str, Any]) -> RecommendationSet:
    """A non-list ``garment_data`` or non-dict seed record counts as empty"""
    raw_items = payload.get("garment_data")
    if not isinstance(raw_items, list):
        raw_items = []
    items: List[RecommendationItem] = [
        normalize_item(raw) for raw in raw_items if isinstance(raw, dict)
    ]
    seed = _seed_record(payload)
    return RecommendationSet(
        seedItem=normalize_item(seed) if seed else None,
        items=items,
        seedDetailError=payload.get("seed_detail_error"),
    )


class DressipiClient:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._http_client = http_client
        self.timeout = timeout
        self.headers = {"Accept": "application/json", "User-Agent": user_agent}

    async def _get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    url, params=params, headers=self.headers, timeout=self.timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, max_redirects=2) as client:
                    response = await client.get(url, params=params, headers=self.headers)
        except httpx.TimeoutException as e:
            raise DressipiError(f"Dressipi request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise DressipiError(f"Dressipi request failed: {e}") from e

        if response.status_code >= 400:
            raise DressipiError(
                f"Dressipi returned {response.status_code}. Preview: {response.text[:PREVIEW_LENGTH]}"
            )
        return response

    async def fetch_item_detail(self, base_url: str, garment_id: str) -> Dict[str, Any]:
        response = await self._get(
            f"{base_url}/api/items/{quote(str(garment_id), safe='')}",
            {"garment_format": "detailed"},
        )
        try:
            return response.json()
        except ValueError as e:
            raise DressipiResponseError(
                f"Failed to parse Dressipi item detail as JSON. Preview: {response.text[:PREVIEW_LENGTH]}"
            ) from e

    async def fetch_related(
        self,
        item_id: str,
        domain: Optional[str] = None,
        customer_name: Optional[str] = None,
        query_options: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Fetch items related to ``item_id``.

        The seed item's own detail is fetched best-effort afterwards and
        stored under ``seed_detail`` (or ``seed_detail_error`` on failure).

        Raises:
            ValueError: neither domain nor customer name given
            DressipiResponseError: response is not JSON
            DressipiError: transport or HTTP failure
        """
        if not item_id or not item_id.strip():
            raise ValueError("itemId is required to fetch related items")

        base_url = resolve_base_url(domain, customer_name)
        params = {"exclude_current_garment": "true", "garment_format": "detailed"}
        params.update(query_options or {})

        logger.info("Fetching Dressipi related items", base_url=base_url, item_id=item_id)
        response = await self._get(
            f"{base_url}/api/items/{quote(item_id.strip(), safe='')}/related", params
        )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            raise DressipiResponseError(
                f"Unexpected response from Dressipi (content-type: {content_type}). "
                f"Preview: {response.text[:PREVIEW_LENGTH]}"
            )

        try:
            payload = json.loads(response.text)
        except ValueError as e:
            raise DressipiResponseError(
                f"Failed to parse Dressipi response as JSON. Preview: {response.text[:PREVIEW_LENGTH]}"
            ) from e
        if not isinstance(payload, dict):
            raise DressipiResponseError(
                f"Unexpected Dressipi payload shape. Preview: {response.text[:PREVIEW_LENGTH]}"
            )

        source = payload.get("source") or {}
        garment_id = source.get("garment_id") if isinstance(source, dict) else None
        if garment_id:
            try:
                payload["seed_detail"] = await self.fetch_item_detail(base_url, garment_id)
            except DressipiError as e:
                logger.warning("Dressipi seed detail failed", garment_id=garment_id, error=str(e))
                payload["seed_detail_error"] = str(e)

        return payload

    async def recommendations_for(
        self,
        item_id: str,
        domain: Optional[str] = None,
        customer_name: Optional[str] = None,
        query_options: Optional[Dict[str, str]] = None,
    ) -> RecommendationSet:
        payload = await self.fetch_related(item_id, domain, customer_name, query_options)
        try:
            return normalize_recommendations(payload)
        except (TypeError, ValueError, AttributeError) as e:
            preview = json.dumps(payload, default=str)[:PREVIEW_LENGTH]
            raise DressipiResponseError(
                f"Unexpected Dressipi payload shape: {e}. Preview: {preview}"
            ) from e
