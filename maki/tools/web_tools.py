"""Web tools for fetching public pages over httpx."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlparse

import httpx

from .registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

USER_AGENT = "maki-agent/1.0 (AI Agent)"
MIN_FETCH_LENGTH = 100
MAX_FETCH_LENGTH = 50000

_PRIVATE_HOST = re.compile(
    r"^(10\.|192\.168\.|172\.(1[6-9]|2[0-9]|3[0-1])\.|fd[0-9a-f]{2}:)",
    re.IGNORECASE,
)
_HREF = re.compile(r"""href\s*=\s*["']([^"'#]+)["']""", re.IGNORECASE)


def is_safe_url(url: str) -> bool:
    """Only allow public http(s) URLs, never local or private network hosts."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme not in ("http", "https"):
        return False

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return False
    if hostname in ("localhost", "127.0.0.1", "::1"):
        return False
    if _PRIVATE_HOST.match(hostname):
        return False
    if hostname.endswith(".local"):
        return False
    return True


class WebTools:
    """Fetches public web content with a bounded timeout."""

    def __init__(
        self,
        timeout: float = 15.0,
        default_max_length: int = 10000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.default_max_length = default_max_length
        self.transport = transport

    async def _get(self, url: str) -> httpx.Response:
        if not is_safe_url(url):
            raise ValueError(
                f"Invalid or disallowed URL: {url}. Must be a public HTTP/HTTPS URL "
                "and not point to local or private network resources."
            )

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,text/plain;q=0.8,*/*;q=0.7",
            },
        ) as client:
            try:
                response = await client.get(url)
            except httpx.TimeoutException as e:
                raise TimeoutError(
                    f"Request to {url} timed out after {self.timeout:g} seconds."
                ) from e
            response.raise_for_status()
            return response

    async def fetch_website_content(self, url: str, maxLength: int | None = None) -> dict:
        max_length = maxLength or self.default_max_length
        max_length = max(MIN_FETCH_LENGTH, min(int(max_length), MAX_FETCH_LENGTH))

        response = await self._get(url)
        content = response.text
        truncated = len(content) > max_length
        content_type = response.headers.get("content-type", "unknown")

        logger.debug(f"Fetched {len(content)} chars from {url}")
        return {
            "success": True,
            "url": url,
            "statusCode": response.status_code,
            "contentType": content_type,
            "content": content[:max_length],
            "truncated": truncated,
            "message": f"Successfully fetched content from {url}. Content-Type: {content_type}.",
        }

    async def extract_links_from_page(self, url: str) -> dict:
        response = await self._get(url)
        base = str(response.url)

        links: list[str] = []
        seen: set[str] = set()
        for href in _HREF.findall(response.text):
            absolute = urljoin(base, href.strip())
            if urlparse(absolute).scheme not in ("http", "https"):
                continue
            if absolute not in seen:
                seen.add(absolute)
                links.append(absolute)

        return {"success": True, "url": url, "links": links, "linkCount": len(links)}


def register_web_tools(registry: ToolRegistry, web: WebTools) -> None:
    """Register the web tools on a registry."""
    # Slack on top of the transport timeout so httpx reports first
    tool_timeout = web.timeout + 5

    registry.register(ToolDefinition(
        name="fetchWebsiteContent",
        description=(
            "EXTERNAL DATA RETRIEVAL: Fetch the raw HTML/text of a public website. "
            "Cannot access private or internal networks."
        ),
        parameters={
            "url": {
                "type": "string",
                "description": "Public HTTP/HTTPS URL to fetch",
            },
            "maxLength": {
                "type": "number",
                "description": (
                    f"Content length limit in characters. Default: {web.default_max_length}. "
                    f"Range: {MIN_FETCH_LENGTH}-{MAX_FETCH_LENGTH}."
                ),
            },
        },
        required_params=["url"],
        handler=web.fetch_website_content,
        timeout=tool_timeout,
    ))
    registry.register(ToolDefinition(
        name="extractLinksFromPage",
        description="LINK DISCOVERY: Extract every absolute http(s) link from a public web page.",
        parameters={
            "url": {
                "type": "string",
                "description": "Public HTTP/HTTPS URL of the page",
            },
        },
        required_params=["url"],
        handler=web.extract_links_from_page,
        timeout=tool_timeout,
    ))
