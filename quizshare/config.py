"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from quizshare.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SHARE_BASE_URL,
)
from quizshare.constants.quiz_constants import DEFAULT_LLM_MODEL


@dataclass(slots=True, frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    share_base_url: str = DEFAULT_SHARE_BASE_URL
    openai_api_key: str | None = None
    llm_model: str = DEFAULT_LLM_MODEL
    recaptcha_secret_key: str | None = None


def load_settings(use_dotenv: bool = True) -> Settings:
    if use_dotenv:
        load_dotenv()
    raw_port = os.getenv("QUIZSHARE_PORT", str(DEFAULT_PORT))
    try:
        port = int(raw_port)
    except ValueError as exc:
        raise ValueError(f"QUIZSHARE_PORT must be an integer, got {raw_port!r}") from exc
    return Settings(
        host=os.getenv("QUIZSHARE_HOST", DEFAULT_HOST),
        port=port,
        log_level=os.getenv("QUIZSHARE_LOG_LEVEL", "INFO"),
        share_base_url=os.getenv("QUIZSHARE_SHARE_BASE_URL", DEFAULT_SHARE_BASE_URL).rstrip("/"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        llm_model=os.getenv("QUIZSHARE_LLM_MODEL", DEFAULT_LLM_MODEL),
        recaptcha_secret_key=os.getenv("RECAPTCHA_SECRET_KEY") or None,
    )
