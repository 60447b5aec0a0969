"""Pydantic models shared by the clients, the checker and the HTTP layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NormalizationResult(BaseModel):
    """Outcome of an RxNorm lookup.

    ``normalized`` is False when the original term was kept; ``reason``
    then says why (network error, bad status, no candidate, ...).
    """

    term: str
    normalized: bool = False
    reason: str | None = None


class LabelCandidate(BaseModel):
    """One entry of a DailyMed SPL search result."""

    title: str | None = None
    setid: str | None = None


class ResolvedLabel(BaseModel):
    """A drug name resolved to its label excerpt and source link."""

    model_config = ConfigDict(frozen=True)

    name: str
    setid: str
    excerpt: str
    link: str


class InteractionRequest(BaseModel):
    """The two drug names, however they arrived at the boundary."""

    drug_a: str | None = None
    drug_b: str | None = None


class ParsedSummary(BaseModel):
    """Summarizer output after parsing; ``defaulted`` marks the fallback."""

    summary: str
    mechanism: str | None = None
    severity: str | None = None
    defaulted: bool = False


class InteractionSummary(BaseModel):
    """What the /api/ddi endpoint sends back on success."""

    summary: str
    mechanism: str | None = None
    severity: str | None = None
    sources: list[str] = Field(min_length=2, max_length=2)  # label A, label B


class ErrorResponse(BaseModel):
    """What the /api/ddi endpoint sends back on failure."""

    error: str
