"""Static metadata describing QuizShare."""

APP_NAME = "QuizShare"
APP_VERSION = "0.1"
