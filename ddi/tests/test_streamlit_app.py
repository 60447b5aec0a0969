"""Tests for the Streamlit frontend.

Streamlit's AppTest runs the script in-process; requests.post is patched
so no backend is needed.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import requests
from streamlit.testing.v1 import AppTest

import ddi_checker

SCRIPT = str(Path(ddi_checker.__file__).parent / "streamlit_app.py")


def _submit(at: AppTest) -> AppTest:
    at.run()
    at.text_input[0].input("amiodarone")
    at.text_input[1].input("simvastatin")
    at.run()
    return at.button[0].click().run()


@patch("requests.post")
def test_invalid_backend_url_shows_error(mock_post: MagicMock) -> None:
    mock_post.side_effect = requests.exceptions.InvalidURL("No host supplied")

    at = _submit(AppTest.from_file(SCRIPT))

    assert not at.exception
    assert "Request to the backend failed" in at.error[0].value


@patch("requests.post")
def test_non_json_response_shows_status(mock_post: MagicMock) -> None:
    response = MagicMock(status_code=502)
    response.json.side_effect = ValueError("no json")
    mock_post.return_value = response

    at = _submit(AppTest.from_file(SCRIPT))

    assert not at.exception
    assert "HTTP 502" in at.error[0].value


@patch("requests.post")
def test_success_lists_both_sources(mock_post: MagicMock) -> None:
    mock_post.return_value = MagicMock(
        status_code=200,
        json=MagicMock(
            return_value={
                "summary": "Limit simvastatin to 20 mg/day.",
                "mechanism": None,
                "severity": "major",
                "sources": ["https://x/a", "https://x/b"],
            }
        ),
    )

    at = _submit(AppTest.from_file(SCRIPT))

    assert not at.exception
    assert not at.error
    links = [md.value for md in at.markdown]
    assert any("https://x/a" in value for value in links)
    assert any("https://x/b" in value for value in links)
