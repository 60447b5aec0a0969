"""End-to-end tests for the /api/ddi endpoint.

The checker behind the endpoint is real, but every outbound client talks to
one httpx MockTransport that plays DailyMed, RxNav and OpenAI. ``calls``
records each outbound request so tests can assert what was (not) contacted.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from ddi_checker.app import METHOD_HINT, app
from ddi_checker.checker import InteractionChecker
from ddi_checker.config import Settings
from ddi_checker.dailymed_client import DailyMedClient
from ddi_checker.rxnorm_client import RxNormClient
from ddi_checker.summarizer import DEFAULT_SUMMARY, OpenAISummarizer

DAILYMED = "https://dailymed.test/dailymed"

SETIDS = {"amiodarone": "amio-setid", "simvastatin": "simva-setid"}


class FakeUpstream:
    """One MockTransport handler standing in for all three services."""

    def __init__(self, summary_text: str) -> None:
        self.summary_text = summary_text
        self.calls: list[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(request.url.host + path)

        if path.endswith("approximateTerm.json"):
            return httpx.Response(200, json={"approximateGroup": {}})

        if path.endswith("spls.json"):
            name = request.url.params["drug_name"]
            items = (
                [{"title": f"{name.upper()} tablet", "setid": SETIDS[name]}]
                if name in SETIDS
                else []
            )
            return httpx.Response(200, json={"data": items})

        if path.endswith("drugInfo.cfm"):
            setid = request.url.params["setid"]
            return httpx.Response(
                200,
                text=f"<h2>7 DRUG INTERACTIONS</h2><p>{setid} text</p><h2>8 x</h2>",
            )

        if path.endswith("/responses"):
            return httpx.Response(200, json={"output_text": self.summary_text})

        return httpx.Response(404)


def _build_checker(upstream: FakeUpstream, api_key: str = "sk-test") -> InteractionChecker:
    settings = Settings(
        dailymed_base_url=DAILYMED,
        rxnav_base_url="https://rxnav.test/REST",
        openai_base_url="https://openai.test/v1",
        openai_api_key=api_key,
        summarizer_provider="openai",
    )
    transport = httpx.MockTransport(upstream.handler)

    dailymed = DailyMedClient(base_url=DAILYMED)
    dailymed._http = httpx.AsyncClient(transport=transport)
    rxnorm = RxNormClient(base_url=settings.rxnav_base_url)
    rxnorm._http = httpx.AsyncClient(transport=transport)
    summarizer = OpenAISummarizer(settings)
    summarizer._http = httpx.AsyncClient(transport=transport)

    return InteractionChecker(
        settings, dailymed=dailymed, rxnorm=rxnorm, summarizer=summarizer
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(
        json.dumps(
            {
                "summary": "Do not exceed 20 mg simvastatin daily with amiodarone.",
                "mechanism": "CYP3A4 inhibition",
                "severity": "major",
            }
        )
    )


@pytest.fixture
def client(upstream: FakeUpstream) -> Iterator[TestClient]:
    checker = _build_checker(upstream)
    with patch("ddi_checker.app.get_checker", return_value=checker):
        yield TestClient(app)


# --- Success ---


def test_post_both_resolvable(client: TestClient) -> None:
    response = client.post(
        "/api/ddi", json={"drugA": "amiodarone", "drugB": "simvastatin"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]
    assert data["severity"] == "major"
    assert data["sources"] == [
        f"{DAILYMED}/drugInfo.cfm?setid=amio-setid",
        f"{DAILYMED}/drugInfo.cfm?setid=simva-setid",
    ]
    assert len(set(data["sources"])) == 2


def test_get_query_params(client: TestClient) -> None:
    response = client.get("/api/ddi", params={"drugA": "amiodarone", "drugB": "simvastatin"})
    assert response.status_code == 200
    assert len(response.json()["sources"]) == 2


def test_repeat_call_same_sources(client: TestClient) -> None:
    body = {"drugA": "amiodarone", "drugB": "simvastatin"}
    first = client.post("/api/ddi", json=body).json()
    second = client.post("/api/ddi", json=body).json()
    assert first["sources"] == second["sources"]


# --- Client errors ---


def test_empty_drug_a_is_400_without_outbound_calls(
    client: TestClient, upstream: FakeUpstream
) -> None:
    response = client.post("/api/ddi", json={"drugA": "", "drugB": "simvastatin"})
    assert response.status_code == 400
    assert "error" in response.json()
    assert upstream.calls == []


def test_invalid_json_body_is_400(client: TestClient, upstream: FakeUpstream) -> None:
    response = client.post(
        "/api/ddi", content=b"drugA=x", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert upstream.calls == []


def test_unsupported_method_is_405(client: TestClient) -> None:
    response = client.put("/api/ddi", json={"drugA": "a", "drugB": "b"})
    assert response.status_code == 405
    assert "POST" in response.json()["error"]
    assert "GET" in response.json()["error"]


def test_unrouted_method_is_405_with_error(client: TestClient) -> None:
    """Methods the route doesn't list still get the {error} body."""
    response = client.request("TRACE", "/api/ddi")
    assert response.status_code == 405
    assert response.json() == {"error": METHOD_HINT}


def test_unknown_path_keeps_default_404(client: TestClient) -> None:
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


# --- Resolution misses ---


def test_unresolvable_drug_a_is_404_naming_a(client: TestClient) -> None:
    response = client.post(
        "/api/ddi", json={"drugA": "notadrug", "drugB": "simvastatin"}
    )
    assert response.status_code == 404
    error = response.json()["error"]
    assert "Drug A" in error
    assert "notadrug" in error


# --- Summarizer problems ---


def test_unparseable_summary_is_200_with_default(upstream: FakeUpstream) -> None:
    upstream.summary_text = "not json at all"
    checker = _build_checker(upstream)
    with patch("ddi_checker.app.get_checker", return_value=checker):
        response = TestClient(app).post(
            "/api/ddi", json={"drugA": "amiodarone", "drugB": "simvastatin"}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["summary"] == DEFAULT_SUMMARY
    assert data["mechanism"] is None
    assert len(data["sources"]) == 2


def test_missing_api_key_is_500(upstream: FakeUpstream) -> None:
    checker = _build_checker(upstream, api_key="")
    with patch("ddi_checker.app.get_checker", return_value=checker):
        response = TestClient(app).post(
            "/api/ddi", json={"drugA": "amiodarone", "drugB": "simvastatin"}
        )

    assert response.status_code == 500
    assert response.json() == {"error": "Server missing OPENAI_API_KEY."}
    assert not any(call.endswith("/responses") for call in upstream.calls)


def test_summarizer_http_error_is_500(upstream: FakeUpstream) -> None:
    async def failing(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/responses"):
            return httpx.Response(503, text="overloaded")
        return await upstream.handler(request)

    checker = _build_checker(upstream)
    checker._summarizer._http = httpx.AsyncClient(  # type: ignore[union-attr]
        transport=httpx.MockTransport(failing)
    )
    with patch("ddi_checker.app.get_checker", return_value=checker):
        response = TestClient(app).post(
            "/api/ddi", json={"drugA": "amiodarone", "drugB": "simvastatin"}
        )

    assert response.status_code == 500
    assert response.json() == {"error": "OpenAI request failed: 503"}
