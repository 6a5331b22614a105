"""Network configuration constants for the quiz service."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_SHARE_BASE_URL: str = "http://localhost:3000"
RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
HTTP_TIMEOUT_SECONDS: float = 10.0
USER_ID_HEADER: str = "X-User-Id"
USER_EMAIL_HEADER: str = "X-User-Email"
