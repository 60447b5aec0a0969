"""LLM summarization of two label excerpts.

The checker hands this module two resolved labels and gets back a JSON
string shaped like ``DDI_SCHEMA``. Two backends are available:

- OpenAISummarizer:    the OpenAI Responses API, called directly with httpx
- AnthropicSummarizer: Claude via langchain-anthropic

Both return the model's raw text. Parsing is a separate step
(``parse_summary``) that never fails: malformed output degrades to
``DEFAULT_SUMMARY`` because the labels themselves are still worth citing.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import anthropic
import httpx
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import SecretStr

from ddi_checker.config import Settings
from ddi_checker.models import ParsedSummary, ResolvedLabel

logger = logging.getLogger(__name__)

MAX_EXCERPT_CHARS = 8000

DEFAULT_SUMMARY = "No clear interaction evidence in provided labels."

SYSTEM_PROMPT = """\
You are a clinical pharmacist assistant.
Use ONLY the FDA label excerpts (Section 7: Drug Interactions) provided.
If there is no evidence, say so clearly.
Output JSON with fields: summary, mechanism, severity. Include any \
label-stated dose caps or avoid/monitor instructions.
"""

DDI_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "mechanism": {"type": "string"},
        "severity": {"type": "string"},
    },
    "required": ["summary"],
}


class SummarizerError(Exception):
    """Raised when the summarization provider returns an error response."""

    def __init__(self, provider: str, status_code: int, detail: str) -> None:
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{provider} request failed: {status_code}")


class Summarizer(Protocol):
    """Anything that turns a system + user prompt into model text."""

    async def summarize(self, system: str, user: str) -> str: ...

    async def close(self) -> None: ...


def build_user_prompt(label_a: ResolvedLabel, label_b: ResolvedLabel) -> str:
    """Embed both drug names and their (truncated) excerpts."""
    return (
        f"Drug A: {label_a.name}\n"
        f"Drug B: {label_b.name}\n"
        "\n"
        "Label (A) excerpt:\n"
        f"{label_a.excerpt[:MAX_EXCERPT_CHARS]}\n"
        "\n"
        "Label (B) excerpt:\n"
        f"{label_b.excerpt[:MAX_EXCERPT_CHARS]}"
    )


def parse_summary(content: str | None) -> ParsedSummary:
    """Parse model output into a ParsedSummary, defaulting on bad output.

    Args:
        content: Raw text returned by the summarizer.

    Returns:
        The parsed fields. ``defaulted`` is True when the output was not a
        JSON object or had no usable ``summary``.
    """
    try:
        parsed = json.loads(content or "{}")
    except (TypeError, ValueError) as exc:
        logger.warning("JSON parse fallback: %s", exc)
        return ParsedSummary(summary=DEFAULT_SUMMARY, defaulted=True)

    if not isinstance(parsed, dict):
        logger.warning("JSON parse fallback: expected object, got %s", type(parsed).__name__)
        return ParsedSummary(summary=DEFAULT_SUMMARY, defaulted=True)

    summary = _text_field(parsed, "summary")
    return ParsedSummary(
        summary=summary or DEFAULT_SUMMARY,
        mechanism=_text_field(parsed, "mechanism"),
        severity=_text_field(parsed, "severity"),
        defaulted=summary is None,
    )


def _text_field(parsed: dict[str, Any], key: str) -> str | None:
    value = parsed.get(key)
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else json.dumps(value)


# ---------------------------------------------------------------------------
# OpenAI backend
# ---------------------------------------------------------------------------


class OpenAISummarizer:
    """Calls the OpenAI Responses API with a strict JSON schema."""

    provider = "OpenAI"

    def __init__(self, settings: Settings) -> None:
        self.base_url = settings.openai_base_url.rstrip("/")
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.temperature = settings.temperature
        self.max_output_tokens = settings.max_output_tokens
        self._http = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def summarize(self, system: str, user: str) -> str:
        """Send the prompt and return the model's text output.

        Raises:
            SummarizerError: On a transport failure or non-2xx response.
        """
        payload = {
            "model": self.model,
            "input": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "ddi_schema",
                    "schema": DDI_SCHEMA,
                }
            },
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.post(
                f"{self.base_url}/responses", json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.error("OpenAI request failed: %s", exc)
            raise SummarizerError(self.provider, 0, str(exc)) from exc

        if response.status_code >= 400:
            logger.error("OpenAI error: %d %s", response.status_code, response.text)
            raise SummarizerError(self.provider, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError:
            logger.warning("OpenAI returned a non-JSON envelope")
            return "{}"
        return response_text(data)


def response_text(data: Any) -> str:
    """Pull the model text out of either response envelope.

    Handles the Responses API (``output_text`` or ``output[].content[]``)
    and the classic chat-completion envelope (``choices[0].message``).
    """
    if not isinstance(data, dict):
        return "{}"

    if isinstance(data.get("output_text"), str) and data["output_text"]:
        return data["output_text"]

    choices = data.get("choices") or []
    if choices and isinstance(choices[0], dict):
        content = (choices[0].get("message") or {}).get("content")
        if isinstance(content, str) and content:
            return content

    for item in data.get("output") or []:
        if not isinstance(item, dict):
            continue
        for part in item.get("content") or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                return part["text"]

    return "{}"


# ---------------------------------------------------------------------------
# Anthropic backend
# ---------------------------------------------------------------------------


class AnthropicSummarizer:
    """Calls Claude through langchain-anthropic."""

    provider = "Anthropic"

    def __init__(self, settings: Settings) -> None:
        # mypy can't see Pydantic model fields as constructor kwargs.
        self.model = ChatAnthropic(
            model_name=settings.anthropic_model,  # type: ignore[call-arg]
            anthropic_api_key=SecretStr(settings.anthropic_api_key),  # type: ignore[call-arg]
            temperature=settings.temperature,
            max_tokens=settings.max_output_tokens,  # type: ignore[call-arg]
            timeout=settings.http_timeout,
        )

    async def close(self) -> None:
        """Nothing to release; the Anthropic SDK manages its own pool."""

    async def summarize(self, system: str, user: str) -> str:
        """Send the prompt and return Claude's text output.

        The schema is enforced through the system prompt; Claude has no
        response_format switch.

        Raises:
            SummarizerError: If the Anthropic API rejects the request.
        """
        schema_hint = f"Respond with a single JSON object matching: {json.dumps(DDI_SCHEMA)}"
        messages = [
            SystemMessage(content=f"{system}\n{schema_hint}"),
            HumanMessage(content=user),
        ]
        try:
            result = await self.model.ainvoke(messages)
        except anthropic.APIStatusError as exc:
            logger.error("Anthropic error: %d %s", exc.status_code, exc.message)
            raise SummarizerError(self.provider, exc.status_code, exc.message) from exc
        except anthropic.APIError as exc:
            logger.error("Anthropic request failed: %s", exc)
            raise SummarizerError(self.provider, 0, str(exc)) from exc

        return message_text(result.content)


def message_text(content: Any) -> str:
    """Flatten a LangChain message's content into plain text."""
    if isinstance(content, str):
        return content
    parts = [
        block.get("text", "")
        for block in content or []
        if isinstance(block, dict) and block.get("type") == "text"
    ]
    return "".join(parts) or "{}"


def create_summarizer(settings: Settings) -> Summarizer:
    """Build the backend named by ``settings.summarizer_provider``."""
    if settings.summarizer_provider == "anthropic":
        return AnthropicSummarizer(settings)
    if settings.summarizer_provider != "openai":
        logger.warning(
            "Unknown SUMMARIZER_PROVIDER %r, using openai",
            settings.summarizer_provider,
        )
    return OpenAISummarizer(settings)
