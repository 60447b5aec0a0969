"""Top-level drug interaction check.

InteractionChecker wires the pipeline together:
1. Validate that both drug names are present
2. Normalize both names through RxNorm (concurrently, never fails)
3. Resolve both names to DailyMed labels (concurrently)
4. Build the prompt from both excerpts
5. Ask the summarizer for a schema-shaped JSON answer
6. Parse it, defaulting on malformed output
7. Return the summary with both label links as sources

Errors the caller should turn into an HTTP status derive from
InteractionError and carry ``status_code``.
"""

from __future__ import annotations

import asyncio
import logging

from ddi_checker.config import Settings
from ddi_checker.dailymed_client import DailyMedAPIError, DailyMedClient
from ddi_checker.models import InteractionRequest, InteractionSummary, ResolvedLabel
from ddi_checker.rxnorm_client import RxNormClient
from ddi_checker.summarizer import (
    SYSTEM_PROMPT,
    Summarizer,
    build_user_prompt,
    create_summarizer,
    parse_summary,
)

logger = logging.getLogger(__name__)


class InteractionError(Exception):
    """Base for failures that end a check with a specific HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MissingDrugNamesError(InteractionError):
    """Raised when either drug name is missing or blank."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("Missing drug names (need both drugA and drugB).")


class LabelNotFoundError(InteractionError):
    """Raised when one or both drugs have no usable DailyMed label."""

    status_code = 404

    def __init__(self, message: str, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(message)


class SummarizerConfigError(InteractionError):
    """Raised when the summarizer credential is not configured."""

    status_code = 500

    def __init__(self, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(f"Server missing {env_var}.")


class InteractionChecker:
    """Answers "do drug A and drug B interact?" from their labels.

    Collaborators default to real clients built from ``settings``; tests
    pass their own.
    """

    def __init__(
        self,
        settings: Settings,
        dailymed: DailyMedClient | None = None,
        rxnorm: RxNormClient | None = None,
        summarizer: Summarizer | None = None,
    ) -> None:
        self.settings = settings
        self.dailymed = dailymed or DailyMedClient(
            base_url=settings.dailymed_base_url, timeout=settings.http_timeout
        )
        self.rxnorm = rxnorm or RxNormClient(
            base_url=settings.rxnav_base_url, timeout=settings.http_timeout
        )
        # Built on first use, after the credential check.
        self._summarizer = summarizer

    async def close(self) -> None:
        """Close every collaborator's connection pool."""
        await self.dailymed.close()
        await self.rxnorm.close()
        if self._summarizer is not None:
            await self._summarizer.close()

    async def check(self, request: InteractionRequest) -> InteractionSummary:
        """Run the full pipeline for one pair of drugs.

        Args:
            request: The two drug names.

        Returns:
            The interaction summary with both label links as sources.

        Raises:
            MissingDrugNamesError: If either name is missing.
            LabelNotFoundError: If either label cannot be resolved.
            SummarizerConfigError: If the summarizer key is not set.
            SummarizerError: If the summarizer call fails.
        """
        drug_a = (request.drug_a or "").strip()
        drug_b = (request.drug_b or "").strip()
        if not drug_a or not drug_b:
            raise MissingDrugNamesError()

        norm_a, norm_b = await asyncio.gather(
            self.rxnorm.normalize(drug_a),
            self.rxnorm.normalize(drug_b),
        )
        logger.info("Normalized: %r -> %r, %r -> %r", drug_a, norm_a.term, drug_b, norm_b.term)

        # return_exceptions so one failing lookup does not cancel the other
        outcome_a, outcome_b = await asyncio.gather(
            self.dailymed.resolve_label(norm_a.term),
            self.dailymed.resolve_label(norm_b.term),
            return_exceptions=True,
        )
        label_a = _label_or_none(drug_a, outcome_a)
        label_b = _label_or_none(drug_b, outcome_b)
        logger.info("Label fetched A? %s B? %s", label_a is not None, label_b is not None)

        if label_a is None and label_b is None:
            raise LabelNotFoundError(
                f'Could not fetch labels for "{drug_a}" and "{drug_b}". '
                "Try generic names or alternate spellings.",
                missing=[drug_a, drug_b],
            )
        if label_a is None:
            raise LabelNotFoundError(
                f'Could not fetch label for Drug A: "{drug_a}". '
                "Try the generic/active ingredient name.",
                missing=[drug_a],
            )
        if label_b is None:
            raise LabelNotFoundError(
                f'Could not fetch label for Drug B: "{drug_b}". '
                "Try the generic/active ingredient name.",
                missing=[drug_b],
            )

        user_prompt = build_user_prompt(label_a, label_b)

        if not self.settings.api_key:
            logger.error("Server missing %s", self.settings.api_key_env_var)
            raise SummarizerConfigError(self.settings.api_key_env_var)

        content = await self._get_summarizer().summarize(SYSTEM_PROMPT, user_prompt)
        parsed = parse_summary(content)
        if parsed.defaulted:
            logger.info("Summarizer output unusable, returning default summary")

        return InteractionSummary(
            summary=parsed.summary,
            mechanism=parsed.mechanism,
            severity=parsed.severity,
            sources=[label_a.link, label_b.link],
        )

    def _get_summarizer(self) -> Summarizer:
        if self._summarizer is None:
            self._summarizer = create_summarizer(self.settings)
        return self._summarizer


def _label_or_none(
    drug: str, outcome: ResolvedLabel | BaseException | None
) -> ResolvedLabel | None:
    """Collapse a gather() outcome; DailyMed errors count as "not found"."""
    if isinstance(outcome, DailyMedAPIError):
        logger.warning(
            "DailyMed %s stage failed for %r: HTTP %d",
            outcome.stage,
            drug,
            outcome.status_code,
        )
        return None
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


# --- Module-level singleton ---
# One checker (and its connection pools) for the whole FastAPI process.

_checker: InteractionChecker | None = None


def get_checker() -> InteractionChecker:
    """Get or create the shared InteractionChecker singleton."""
    global _checker  # noqa: PLW0603
    if _checker is None:
        _checker = InteractionChecker(Settings())
    return _checker


async def close_checker() -> None:
    """Close and forget the shared checker, if one was created."""
    global _checker  # noqa: PLW0603
    if _checker is not None:
        await _checker.close()
        _checker = None
