"""Configuration for the drug interaction checker.

Loads settings from environment variables (via a .env file or the system
environment). Uses safe defaults so the package can be imported even when
no API key is set; CI imports it without real credentials.

A missing summarizer key is only reported when a request actually needs the
summarizer (see ``InteractionChecker.check``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env file if it exists (it won't exist in CI or Docker)
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

# --- Label registry (DailyMed) ---
DAILYMED_BASE_URL: str = os.getenv(
    "DAILYMED_BASE_URL", "https://dailymed.nlm.nih.gov/dailymed"
)

# --- Name normalization (RxNorm / RxNav) ---
# Free and public, no API key needed.
RXNAV_BASE_URL: str = os.getenv("RXNAV_BASE_URL", "https://rxnav.nlm.nih.gov/REST")

# --- Summarization LLM ---
# "openai" talks to the Responses API over httpx, "anthropic" goes through
# langchain-anthropic.
SUMMARIZER_PROVIDER: str = os.getenv("SUMMARIZER_PROVIDER", "openai")

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest")

# Low temperature: the summary should restate the label, not paraphrase it.
SUMMARY_TEMPERATURE: float = float(os.getenv("SUMMARY_TEMPERATURE", "0.2"))
SUMMARY_MAX_TOKENS: int = int(os.getenv("SUMMARY_MAX_TOKENS", "700"))

# --- Outbound HTTP ---
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Frontend ---
# Where the Streamlit page finds the FastAPI backend.
DDI_BACKEND_URL: str = os.getenv("DDI_BACKEND_URL", "http://localhost:8000")


class Settings(BaseModel):
    """Everything the interaction checker needs, bundled for injection.

    Defaults come from the environment-backed constants above, so
    ``Settings()`` is the production configuration and tests can build
    their own with explicit values.
    """

    dailymed_base_url: str = DAILYMED_BASE_URL
    rxnav_base_url: str = RXNAV_BASE_URL
    summarizer_provider: str = SUMMARIZER_PROVIDER
    openai_api_key: str = OPENAI_API_KEY
    openai_base_url: str = OPENAI_BASE_URL
    openai_model: str = OPENAI_MODEL
    anthropic_api_key: str = ANTHROPIC_API_KEY
    anthropic_model: str = ANTHROPIC_MODEL
    temperature: float = SUMMARY_TEMPERATURE
    max_output_tokens: int = SUMMARY_MAX_TOKENS
    http_timeout: float = HTTP_TIMEOUT_SECONDS

    @property
    def api_key(self) -> str:
        """The credential for the selected summarizer provider."""
        if self.summarizer_provider == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key

    @property
    def api_key_env_var(self) -> str:
        """Name of the env var that should hold ``api_key``."""
        if self.summarizer_provider == "anthropic":
            return "ANTHROPIC_API_KEY"
        return "OPENAI_API_KEY"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
