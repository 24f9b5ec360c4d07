from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from starlette.concurrency import run_in_threadpool
from supabase import Client

from recipebox.app.deps import get_supabase
from recipebox.app.domain.errors import AuthenticationError, AuthRequiredError
from recipebox.app.domain.models import CurrentUser

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[CurrentUser]], None]


def user_from_auth(user: Any) -> Optional[CurrentUser]:
    if not user:
        return None
    meta = getattr(user, "user_metadata", None) or {}
    name = avatar_url = None
    if isinstance(meta, dict):
        name = meta.get("name")
        avatar_url = meta.get("avatar_url")
    return CurrentUser(id=str(user.id), email=getattr(user, "email", None), name=name, avatar_url=avatar_url)


class AuthSession:
    """
    Holds the signed-in user for this process.
    "No current user" is a valid state; mutating operations check
    ``require_user`` before touching the backend.
    """

    def __init__(self, client: Client | None = None):
        self._client = client
        self._user: Optional[CurrentUser] = None
        self._listeners: list[AuthListener] = []

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def require_user(self) -> CurrentUser:
        if self._user is None:
            raise AuthRequiredError()
        return self._user

    def on_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_user(self, user: Optional[CurrentUser]) -> None:
        if user == self._user:
            return
        self._user = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("auth.listener_failed")

    async def restore(self) -> Optional[CurrentUser]:
        """Pick up a session persisted by the auth client, if any."""
        try:
            session = await run_in_threadpool(self.client.auth.get_session)
        except Exception as error:
            logger.error("Error getting session: %s", error)
            session = None
        self._set_user(user_from_auth(getattr(session, "user", None)))
        return self._user

    async def sign_in(self, email: str, password: str) -> CurrentUser:
        try:
            response = await run_in_threadpool(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except Exception as error:
            logger.warning("auth.sign_in_failed email=%s error=%s", email, error)
            raise AuthenticationError(str(error)) from error

        user = user_from_auth(getattr(response, "user", None))
        if user is None:
            raise AuthenticationError("Invalid login credentials")
        self._set_user(user)
        logger.info("auth.signed_in user=%s", user.id)
        return user

    async def sign_up(self, email: str, password: str, name: str) -> CurrentUser:
        """
        Register a new account.

        The new session is signed out right away so the user has to log
        in explicitly afterwards.
        """
        try:
            response = await run_in_threadpool(
                self.client.auth.sign_up,
                {"email": email, "password": password, "options": {"data": {"name": name}}},
            )
        except Exception as error:
            logger.warning("auth.sign_up_failed email=%s error=%s", email, error)
            raise AuthenticationError(str(error)) from error
        finally:
            await self._sign_out_quietly()

        user = user_from_auth(getattr(response, "user", None))
        if user is None:
            raise AuthenticationError("Sign up did not return a user")
        logger.info("auth.signed_up user=%s", user.id)
        return user

    async def sign_out(self) -> None:
        await run_in_threadpool(self.client.auth.sign_out)
        self._set_user(None)
        logger.info("auth.signed_out")

    async def _sign_out_quietly(self) -> None:
        try:
            await run_in_threadpool(self.client.auth.sign_out)
        except Exception as error:
            logger.warning("auth.sign_out_failed error=%s", error)
        self._set_user(None)

    async def update_profile(
        self,
        *,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> CurrentUser:
        self.require_user()
        data = {key: value for key, value in (("name", name), ("avatar_url", avatar_url)) if value is not None}
        if not data:
            return self.require_user()
        try:
            response = await run_in_threadpool(self.client.auth.update_user, {"data": data})
        except Exception as error:
            raise AuthenticationError(str(error)) from error
        user = user_from_auth(getattr(response, "user", None))
        if user is not None:
            self._set_user(user)
        return self.require_user()
