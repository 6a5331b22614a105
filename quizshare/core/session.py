"""Explicit user session passed to the components that need the caller's identity."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from quizshare.core.errors import AuthenticationRequiredError
from quizshare.core.models import SubmitterIdentity


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
    """A user vouched for by the identity provider."""

    user_id: str
    email: str | None = None

    def as_submitter(self) -> SubmitterIdentity:
        return SubmitterIdentity(user_id=self.user_id, email=self.email)


SessionListener = Callable[[AuthenticatedUser | None], None]


class UserSession:
    """Holds the signed-in user and notifies listeners when it changes.

    Views subscribe for as long as they are alive and call the returned
    function to unsubscribe when they are torn down.
    """

    def __init__(self, user: AuthenticatedUser | None = None) -> None:
        self._user = user
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> AuthenticatedUser | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def require_user(self) -> AuthenticatedUser:
        if self._user is None:
            raise AuthenticationRequiredError("Sign in to continue.")
        return self._user

    def sign_in(self, user: AuthenticatedUser) -> None:
        self._user = user
        self._notify()

    def sign_out(self) -> None:
        self._user = None
        self._notify()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)
