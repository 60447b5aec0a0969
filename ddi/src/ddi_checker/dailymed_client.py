"""HTTP client for DailyMed, the NLM's registry of FDA drug labels.

This module provides the DailyMedClient class, which handles:
1. Searching SPL (Structured Product Labeling) documents by drug name
2. Picking the best candidate out of a noisy result list
3. Fetching the rendered label page for the chosen setid
4. Cutting the "Drug Interactions" section out of that page

Concept: noisy registries.
    A search for "simvastatin" returns brand products, combination products
    and repackager labels in no particular order. We ask for 5 results and
    prefer the first whose title contains the query; if none does we still
    take the first result so a lookup that found *something* makes progress.

API endpoints used:
- GET /dailymed/services/v2/spls.json?drug_name={name}&pagesize=5&page=1
- GET /dailymed/drugInfo.cfm?setid={setid}

Usage:
    client = DailyMedClient()
    label = await client.resolve_label("simvastatin")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ddi_checker.config import DAILYMED_BASE_URL, HTTP_TIMEOUT_SECONDS
from ddi_checker.extraction import extract_interaction_section
from ddi_checker.models import LabelCandidate, ResolvedLabel

logger = logging.getLogger(__name__)

DEFAULT_PAGESIZE = 5


class DailyMedAPIError(Exception):
    """Raised when a DailyMed request fails.

    ``stage`` is "list" for the SPL search and "info" for the label page,
    so logs show which half of the lookup broke.
    """

    def __init__(self, stage: str, status_code: int, detail: str) -> None:
        self.stage = stage
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"DailyMed {stage} failed: HTTP {status_code}: {detail}")


class DailyMedClient:
    """Async client for DailyMed SPL search and label pages.

    Attributes:
        base_url: The DailyMed root (e.g., "https://dailymed.nlm.nih.gov/dailymed").
        pagesize: How many candidates a search asks for.
    """

    def __init__(
        self,
        base_url: str = DAILYMED_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        pagesize: int = DEFAULT_PAGESIZE,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.pagesize = pagesize
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    def info_url(self, setid: str) -> str:
        """Canonical, human-readable label page for a setid."""
        return f"{self.base_url}/drugInfo.cfm?setid={setid}"

    async def search(self, drug_name: str) -> list[LabelCandidate]:
        """Search SPL documents by drug name.

        Args:
            drug_name: Name to search for (brand or generic).

        Returns:
            Up to ``pagesize`` candidates, in the order DailyMed returned them.

        Raises:
            DailyMedAPIError: With stage "list" if the search request fails.
        """
        url = f"{self.base_url}/services/v2/spls.json"
        params = {"drug_name": drug_name, "pagesize": self.pagesize, "page": 1}
        logger.info("DailyMed list URL: %s params=%s", url, params)

        response = await self._get("list", url, params=params)
        try:
            payload = response.json()
        except ValueError as exc:
            raise DailyMedAPIError(
                "list", response.status_code, f"invalid JSON: {exc}"
            ) from exc

        candidates = [
            LabelCandidate(
                title=_as_text(item.get("title")), setid=_as_text(item.get("setid"))
            )
            for item in _spl_items(payload)
            if isinstance(item, dict)
        ]
        logger.info("Candidates found for %r: %d", drug_name, len(candidates))
        return candidates

    async def fetch_label_html(self, setid: str) -> str:
        """Fetch the rendered label page for a setid.

        Raises:
            DailyMedAPIError: With stage "info" if the page request fails.
        """
        response = await self._get("info", self.info_url(setid))
        return response.text

    async def resolve_label(self, drug_name: str) -> ResolvedLabel | None:
        """Turn a drug name into its label excerpt and link.

        Args:
            drug_name: The (ideally normalized) drug name.

        Returns:
            The resolved label, or None when DailyMed has no usable match.

        Raises:
            DailyMedAPIError: If either DailyMed request fails.
        """
        candidates = await self.search(drug_name)
        chosen = choose_candidate(drug_name, candidates)
        if chosen is None:
            return None

        logger.info("Chosen setid: %s title: %s", chosen.setid, chosen.title)
        if not chosen.setid:
            return None

        html = await self.fetch_label_html(chosen.setid)
        return ResolvedLabel(
            name=drug_name,
            setid=chosen.setid,
            excerpt=extract_interaction_section(html),
            link=self.info_url(chosen.setid),
        )

    async def _get(
        self,
        stage: str,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET a DailyMed URL, mapping every failure to DailyMedAPIError."""
        try:
            response = await self._http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise DailyMedAPIError(
                stage, 0, f"Request to {url} failed: {exc}"
            ) from exc
        except (UnicodeEncodeError, httpx.InvalidURL) as exc:
            raise DailyMedAPIError(
                stage, 0, f"Request to {url} not sent: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise DailyMedAPIError(stage, response.status_code, response.text)
        return response


def choose_candidate(
    drug_name: str, candidates: list[LabelCandidate]
) -> LabelCandidate | None:
    """Prefer a candidate whose title contains the query, else the first one."""
    if not candidates:
        return None
    query = drug_name.lower()
    for candidate in candidates:
        if query in (candidate.title or "").lower():
            return candidate
    return candidates[0]


def _as_text(value: Any) -> str | None:
    return None if value is None else str(value)


def _spl_items(payload: Any) -> list[Any]:
    """Extract the SPL list from a search payload.

    The v2 API returns ``{"data": [...]}``; some mirrors nest it as
    ``{"data": {"spls": [...]}}``.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, dict):
        data = data.get("spls")
    return data if isinstance(data, list) else []
