"""FastAPI server: the HTTP entry point for the interaction checker.

Endpoints:

- GET  /health   Simple check that the server is running
- POST /api/ddi  JSON body {"drugA": ..., "drugB": ...}
- GET  /api/ddi  Same lookup via ?drugA=&drugB= (handy for debugging)

Any other method on /api/ddi gets a 405 explaining the two accepted shapes.
Errors always come back as {"error": "..."}.

Run locally with:
    cd ddi && uvicorn ddi_checker.app:app --reload
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from ddi_checker.checker import InteractionError, close_checker, get_checker
from ddi_checker.config import configure_logging
from ddi_checker.models import ErrorResponse, InteractionRequest, InteractionSummary
from ddi_checker.summarizer import SummarizerError

configure_logging()
logger = logging.getLogger(__name__)

METHOD_HINT = "Use POST with JSON body {drugA, drugB} or GET with ?drugA=&drugB="


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await close_checker()


app = FastAPI(
    title="Drug Interaction Label Checker",
    description="Summarize what two FDA labels say about using the drugs together",
    version="0.1.0",
    lifespan=lifespan,
)


class UnsupportedMethodError(InteractionError):
    """Raised for any method other than GET or POST on /api/ddi."""

    status_code = 405

    def __init__(self) -> None:
        super().__init__(METHOD_HINT)


async def interaction_request_from_http(request: Request) -> InteractionRequest:
    """Build an InteractionRequest from either accepted request shape.

    GET reads the query string; POST reads a JSON object body. A body that
    is not valid JSON, or not an object, yields empty names so validation
    reports them as missing.

    Raises:
        UnsupportedMethodError: For any other HTTP method.
    """
    if request.method == "GET":
        return InteractionRequest(
            drug_a=request.query_params.get("drugA"),
            drug_b=request.query_params.get("drugB"),
        )

    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            logger.warning("POST /api/ddi body is not valid JSON")
            body = None
        if not isinstance(body, dict):
            return InteractionRequest()
        return InteractionRequest(
            drug_a=_as_name(body.get("drugA")),
            drug_b=_as_name(body.get("drugB")),
        )

    raise UnsupportedMethodError()


def _as_name(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=message).model_dump()
    )


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed(request: Request, exc: StarletteHTTPException) -> Response:
    """Answer methods the router rejects (TRACE, ...) in the {error} shape."""
    if exc.status_code == 405 and request.url.path == "/api/ddi":
        return _error(405, METHOD_HINT)
    return await http_exception_handler(request, exc)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint. Returns 200 if the server is running."""
    return {"status": "ok"}


@app.api_route(
    "/api/ddi",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_model=InteractionSummary,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def ddi(request: Request) -> InteractionSummary | JSONResponse:
    """Check two drugs for a label-documented interaction.

    Resolves both drugs to their DailyMed labels, summarizes the
    interaction sections with an LLM, and returns the summary with both
    label URLs as sources.
    """
    try:
        interaction_request = await interaction_request_from_http(request)
        logger.info(
            "Incoming: method=%s drugA=%r drugB=%r",
            request.method,
            interaction_request.drug_a,
            interaction_request.drug_b,
        )
        return await get_checker().check(interaction_request)
    except InteractionError as exc:
        return _error(exc.status_code, exc.message)
    except SummarizerError as exc:
        return _error(500, str(exc))
    except Exception as exc:
        logger.exception("Handler error")
        return _error(500, str(exc))
