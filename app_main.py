"""Application entry point for the QuizShare service."""

from __future__ import annotations

from quizshare.config import load_settings
from quizshare.core.quiz_generator import QuizGenerator
from quizshare.core.quiz_manager import QuizManager
from quizshare.server.api_server import run_api_server
from quizshare.utils.logging_config import configure_logging


def main() -> None:
    """Load settings, initialize logging, and serve the API."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting QuizShare on %s:%s", settings.host, settings.port)

    quiz_manager = QuizManager(
        generator=QuizGenerator(model=settings.llm_model, api_key=settings.openai_api_key),
        share_base_url=settings.share_base_url,
    )
    run_api_server(quiz_manager, settings)


if __name__ == "__main__":
    main()
