import httpx
import pytest

from quizshare.core.captcha import verify_captcha
from quizshare.core.errors import CaptchaError


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_valid_token_is_accepted():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"success": True})

    assert verify_captcha("tok", "secret", client=_client(handler)) is True
    assert seen["params"] == {"secret": "secret", "response": "tok"}


def test_rejected_token_is_reported():
    client = _client(lambda request: httpx.Response(200, json={"success": False}))
    assert verify_captcha("tok", "secret", client=client) is False


def test_provider_error_raises():
    client = _client(lambda request: httpx.Response(503))
    with pytest.raises(CaptchaError):
        verify_captcha("tok", "secret", client=client)


def test_non_json_reply_raises():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(CaptchaError):
        verify_captcha("tok", "secret", client=client)
