"""Best-effort drug name normalization through the NLM RxNorm API.

RxNav's ``approximateTerm`` endpoint maps brand names and misspellings
("zocor", "simvastatn") to a preferred RxNorm term. Normalization only
improves the odds of a DailyMed match, so this client never raises: on any
failure the caller gets the original term back, flagged as not normalized.

API endpoint used:
- GET /REST/approximateTerm.json?term={name}&maxEntries=1
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ddi_checker.config import HTTP_TIMEOUT_SECONDS, RXNAV_BASE_URL
from ddi_checker.models import NormalizationResult

logger = logging.getLogger(__name__)


class RxNormClient:
    """Async client for the RxNav approximate-term lookup."""

    def __init__(
        self,
        base_url: str = RXNAV_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def normalize(self, term: str) -> NormalizationResult:
        """Map a free-text drug name to RxNorm's preferred term.

        Args:
            term: The drug name as typed by the user.

        Returns:
            A NormalizationResult. ``term`` is the preferred candidate when
            RxNorm had one, otherwise the input unchanged.
        """
        url = f"{self.base_url}/approximateTerm.json"
        try:
            response = await self._http.get(
                url,
                params={"term": term, "maxEntries": 1},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("RxNorm lookup for %r failed: %s", term, exc)
            return NormalizationResult(term=term, reason="http error")
        except (UnicodeEncodeError, httpx.InvalidURL) as exc:
            # e.g. a lone surrogate smuggled in through a JSON body
            logger.warning("RxNorm lookup for %r not sent: %s", term, exc)
            return NormalizationResult(term=term, reason="unencodable term")

        if response.status_code >= 400:
            logger.warning(
                "RxNorm lookup for %r returned HTTP %d", term, response.status_code
            )
            return NormalizationResult(
                term=term, reason=f"status {response.status_code}"
            )

        try:
            preferred = _preferred_candidate(response.json())
        except (ValueError, TypeError, AttributeError, IndexError, KeyError) as exc:
            logger.warning("RxNorm payload for %r was malformed: %s", term, exc)
            return NormalizationResult(term=term, reason="malformed payload")

        if not preferred:
            logger.info("RxNorm had no candidate for %r", term)
            return NormalizationResult(term=term, reason="no candidate")

        return NormalizationResult(term=preferred, normalized=True)


def _preferred_candidate(data: Any) -> str | None:
    """Dig approximateGroup.candidate[0] out of an RxNav response."""
    group = data.get("approximateGroup") or {}
    candidates = group.get("candidate") or []
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    # Older RxNav responses carry only "name" on the candidate.
    preferred = first.get("candidatePreferred") or first.get("name")
    return str(preferred) if preferred else None
