"""reCAPTCHA token verification used by the sign-in form."""

from __future__ import annotations

import logging

import httpx

from quizshare.constants.network_constants import HTTP_TIMEOUT_SECONDS, RECAPTCHA_VERIFY_URL
from quizshare.core.errors import CaptchaError

logger = logging.getLogger(__name__)


def verify_captcha(
    token: str,
    secret: str | None,
    client: httpx.Client | None = None,
    verify_url: str = RECAPTCHA_VERIFY_URL,
) -> bool:
    """Ask the captcha provider whether ``token`` is valid.

    Raises ``CaptchaError`` when the provider cannot be reached or answers
    with something other than JSON.
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        response = http.post(verify_url, params={"secret": secret or "", "response": token})
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Captcha verification failed: %s", exc)
        raise CaptchaError(str(exc)) from exc
    finally:
        if owns_client:
            http.close()
    return bool(payload.get("success", False)) if isinstance(payload, dict) else False
