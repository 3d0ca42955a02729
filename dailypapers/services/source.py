"""Hugging Face Daily Papers listing fetcher.

The listing page for a date embeds the whole day as JSON in the
``data-props`` attribute of the ``DailyPapers`` Svelte hydration element.
For future dates or days without papers the site redirects, either to the
nearest date that has papers or to the generic ``/papers`` listing.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from ..config import DEFAULT_USER_AGENT
from ..errors import FetchError

logger = logging.getLogger(__name__)

HF_BASE_URL = "https://huggingface.co"
DAILY_PAPERS_SELECTOR = '.SVELTE_HYDRATER[data-target="DailyPapers"]'
DATE_PATH_RE = re.compile(r"/papers/date/(\d{4}-\d{2}-\d{2})/?$")


@dataclass(frozen=True)
class SourceListing:
    requested_date: date
    # Date the source actually served; None when it had nothing for the request
    served_date: Optional[date]
    items: List[Dict[str, Any]] = field(default_factory=list)
    final_url: Optional[str] = None

    @property
    def redirected(self) -> bool:
        return self.served_date != self.requested_date


def listing_url(day: date, base_url: str = HF_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/papers/date/{day.isoformat()}"


def extract_daily_papers(html: str) -> List[Dict[str, Any]]:
    """Pull the raw ``dailyPapers`` items out of a listing page.

    Returns an empty list when the anchor element, its ``data-props``
    attribute or the ``dailyPapers`` array is missing. Raises ``FetchError``
    only when the attribute holds JSON that does not decode.
    """
    soup = BeautifulSoup(html, "lxml")
    element = soup.select_one(DAILY_PAPERS_SELECTOR)
    if element is None:
        logger.info("DailyPapers data element not found on page")
        return []

    props = element.get("data-props")
    if not props:
        logger.info("DailyPapers element has no data-props attribute")
        return []

    try:
        data = json.loads(props)
    except json.JSONDecodeError as exc:
        raise FetchError(f"Malformed DailyPapers payload: {exc}") from exc

    papers = data.get("dailyPapers") if isinstance(data, dict) else None
    if not isinstance(papers, list):
        logger.info("No dailyPapers array found in payload")
        return []
    return [item for item in papers if isinstance(item, dict)]


def _served_date(url: httpx.URL) -> Optional[date]:
    match = DATE_PATH_RE.search(url.path)
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


class SourceFetcher:
    """Fetches one listing date at a time. No retries; callers decide."""

    def __init__(
        self,
        base_url: str = HF_BASE_URL,
        *,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent, "Accept": "text/html"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, day: date) -> SourceListing:
        url = listing_url(day, self.base_url)
        logger.info("Fetching papers for %s from %s", day.isoformat(), url)
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out fetching {url}", day=day) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed for {url}: {exc}", day=day) from exc

        if response.status_code >= 400:
            raise FetchError(
                f"HTTP {response.status_code} fetching {url}", day=day
            )

        served = day
        final_url = str(response.url)
        if response.history:
            served = _served_date(response.url)
            if served is None:
                logger.info(
                    "Redirected to generic listing %s; no papers for %s", final_url, day
                )
                return SourceListing(day, None, [], final_url)
            if served != day:
                logger.info(
                    "Note: redirected to %s (original URL was %s)", final_url, url
                )

        try:
            items = extract_daily_papers(response.text)
        except FetchError as exc:
            raise FetchError(f"{exc} ({url})", day=day) from exc

        logger.info("Found %d raw items for %s", len(items), served)
        return SourceListing(day, served, items, final_url)
