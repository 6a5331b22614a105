import pytest

from quizshare.core.errors import AuthenticationRequiredError
from quizshare.core.session import AuthenticatedUser, UserSession


def test_require_user_without_sign_in_fails():
    with pytest.raises(AuthenticationRequiredError):
        UserSession().require_user()


def test_listeners_follow_sign_in_and_out_until_unsubscribed():
    session = UserSession()
    seen = []
    unsubscribe = session.subscribe(seen.append)

    user = AuthenticatedUser(user_id="u1", email="u1@example.com")
    session.sign_in(user)
    session.sign_out()
    unsubscribe()
    session.sign_in(user)

    assert seen == [None, user, None]
    assert session.require_user() is user


def test_authenticated_user_becomes_submitter():
    submitter = AuthenticatedUser(user_id="u1", email="u1@example.com").as_submitter()
    assert submitter.is_authenticated
    assert submitter.label == "u1@example.com"
