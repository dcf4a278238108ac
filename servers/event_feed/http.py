"""
HTTP plumbing shared by the source adapters.

Each source has a public origin and a dev-proxy prefix. With a proxy base
configured, ``/api/vis/en/events/`` on the proxy maps to
``https://vis.ethz.ch/en/events/`` on the origin.
"""

from typing import Any, Optional

import httpx
from pydantic import BaseModel

from .models import EventSource
from .resilience.retry import call_with_retry


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class SourcePayloadError(ValueError):
    """Raised when a response body doesn't have the expected shape."""

    def __init__(self, source: EventSource, message: str):
        super().__init__(f"{source.value}: {message}")
        self.source = source


class SourceEndpoint(BaseModel):
    """Where a source lives and how the dev proxy reaches it."""

    origin: str
    path: str
    proxy_prefix: Optional[str] = None

    def public_url(self, path: Optional[str] = None) -> str:
        """URL on the origin, used for links shown to users."""
        return _join(self.origin, path if path is not None else self.path)

    def request_url(self, path: Optional[str] = None, proxy_base: Optional[str] = None) -> str:
        """URL to request, routed through the proxy when configured."""
        path = path if path is not None else self.path
        if proxy_base and self.proxy_prefix:
            return _join(proxy_base.rstrip("/") + self.proxy_prefix, path)
        return _join(self.origin, path)


def _join(base: str, path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return base.rstrip("/") + "/" + path.lstrip("/")


SOURCE_ENDPOINTS: dict[EventSource, SourceEndpoint] = {
    EventSource.PRIMARY: SourceEndpoint(
        origin="https://idapps.ethz.ch",
        path=(
            "/pcm-pub-services/v2/entries?filters[0].min-till-end=0&rs-first=0"
            "&rs-size=9999&lang=en&client-id=wcms&filters[0].cals=1&comp-ext=true"
        ),
    ),
    EventSource.PARTNER_A: SourceEndpoint(
        origin="https://www.partner.ethz.ch",
        path="/api/events.json",
        proxy_prefix="/api/partner",
    ),
    EventSource.CLUB_A: SourceEndpoint(
        origin="https://vis.ethz.ch",
        path="/en/events/",
        proxy_prefix="/api/vis",
    ),
    EventSource.CLUB_B: SourceEndpoint(
        origin="https://zurich.esn.ch",
        path="/events",
        proxy_prefix="/api/esn",
    ),
    EventSource.CLUB_C: SourceEndpoint(
        origin="https://vmp.ethz.ch",
        path="/en/events/",
        proxy_prefix="/api/vmp",
    ),
}


def create_client(timeout: float = 30.0, **kwargs: Any) -> httpx.AsyncClient:
    """AsyncClient with the feed's timeout and user agent."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
        **kwargs,
    )


async def fetch_text(client: httpx.AsyncClient, url: str, max_attempts: int = 2) -> str:
    """GET a page body, retrying transient failures."""

    async def get_once() -> str:
        response = await client.get(url)
        response.raise_for_status()
        return response.text

    return await call_with_retry(get_once, max_attempts=max_attempts)


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    source: EventSource,
    max_attempts: int = 2,
) -> Any:
    """GET and decode a JSON document.

    Raises:
        SourcePayloadError: If the body is not valid JSON
    """

    async def get_once() -> httpx.Response:
        response = await client.get(url)
        response.raise_for_status()
        return response

    response = await call_with_retry(get_once, max_attempts=max_attempts)
    try:
        return response.json()
    except ValueError as e:
        raise SourcePayloadError(source, f"invalid JSON: {e}") from e
