"""Quiz-related constants shared across the core and API layers."""

TICK_INTERVAL_SECONDS: int = 1
MAX_GENERATED_QUESTIONS: int = 50
DEFAULT_LLM_MODEL: str = "gpt-4o-mini"

PLACEHOLDER_OPTIONS: tuple[str, ...] = ("Option 1", "Option 2", "Option 3", "Option 4")
PLACEHOLDER_QUESTION_TEMPLATE: str = "Question {number}"

# Submitted attempts kept in memory to answer repeated submits and late views.
MAX_FINISHED_ATTEMPTS: int = 1000
