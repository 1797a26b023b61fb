"""Session management: login, registration, logout and current-user refresh.

The SessionManager exclusively owns the current session (token + user). The
token itself lives in the external TokenStore; everything else reads it
through `current_token()` at call time so a logout is never bypassed by a
stale copy. Observers register with `subscribe()` and are told about every
session transition.
"""

import logging
from typing import Callable, List, Optional

from doggocli.core.services.failures import (
    failure_from_exception, failure_from_response, response_payload
)
from doggocli.domain.events.api_events import EventHandler
from doggocli.domain.events.session_events import SessionChangeReason, SessionChanged
from doggocli.domain.interfaces.token_store import TokenStore
from doggocli.domain.models.common import TOKEN_STORAGE_KEY, ApiPath, AuthToken
from doggocli.domain.models.result import ApiResult, ErrorKind
from doggocli.domain.models.user import LoginRequest, RegisterRequest, Session, User
from doggocli.infrastructure.http.gateway import ApiRequest, ResilientGateway
from doggocli.infrastructure.http.wire import decode_session, decode_user, encode_login, encode_register

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[User]], None]

LOGIN_PATH = ApiPath("api/login")
REGISTER_PATH = ApiPath("api/register")
LOGOUT_PATH = ApiPath("api/logout")
CURRENT_USER_PATH = ApiPath("api/user")


class SessionManager:
    """Owns the authenticated session and publishes its transitions."""

    def __init__(
        self,
        gateway: ResilientGateway,
        token_store: TokenStore,
        event_handler: Optional[EventHandler] = None,
    ):
        self.gateway = gateway
        self.token_store = token_store
        self._event_handler = event_handler
        self._current_session: Optional[Session] = None
        self._listeners: List[SessionListener] = []

    # --- State ---

    @property
    def current_session(self) -> Optional[Session]:
        return self._current_session

    @property
    def current_user(self) -> Optional[User]:
        return self._current_session.user if self._current_session else None

    @property
    def is_authenticated(self) -> bool:
        return self._current_session is not None

    async def current_token(self) -> Optional[AuthToken]:
        """Reads the token through to the store on every call."""
        token = await self.token_store.get(TOKEN_STORAGE_KEY)
        return AuthToken(token) if token else None

    # --- Observers ---

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Registers a listener for session changes.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, reason: SessionChangeReason) -> None:
        user = self.current_user
        event = SessionChanged(reason=reason, user=user)
        logger.debug(f"EVENT: {event}")
        if self._event_handler:
            try:
                self._event_handler(event)
            except Exception as e:
                logger.error(f"Event handler failed for SessionChanged: {e}", exc_info=True)
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception as e:
                logger.error(f"Session listener {listener!r} raised: {e}", exc_info=True)

    async def _clear_local_session(self) -> None:
        await self.token_store.remove(TOKEN_STORAGE_KEY)
        self._current_session = None

    async def invalidate_session(self, reason: SessionChangeReason = "invalidated") -> None:
        """Drops the session after the backend rejected its token."""
        logger.warning("Session token rejected by backend; clearing session.")
        await self._clear_local_session()
        self._notify(reason)

    # --- Operations ---

    async def login(self, username: str, password: str) -> ApiResult[Session]:
        """Authenticates and establishes a new session.

        Empty credentials are rejected without a network call. A non-2xx
        response leaves the existing session untouched and returns its status
        and payload.
        """
        if not username or not password:
            return ApiResult.failure(ErrorKind.VALIDATION, "Username and password are required")

        request = ApiRequest("POST", LOGIN_PATH, body=encode_login(LoginRequest(username, password)))
        try:
            response = await self.gateway.execute(request)
            if not response.is_success:
                logger.info(f"Login rejected for '{username}' with HTTP {response.status_code}")
                return failure_from_response(response, "Login")
            session = decode_session(response.json())
        except Exception as e:
            logger.error(f"Login for '{username}' failed: {e}", exc_info=True)
            return failure_from_exception(e, "Login")

        await self.token_store.set(TOKEN_STORAGE_KEY, session.token)
        self._current_session = session
        logger.info(f"Logged in as '{session.user.username}'")
        self._notify("login")
        return ApiResult.success(session)

    async def register(self, username: str, email: str, password: str, password_confirmation: str) -> bool:
        """Creates an account. Does not log the new user in."""
        if not username or not email or not password:
            logger.info("Registration rejected locally: username, email and password are required")
            return False

        body = encode_register(RegisterRequest(username, email, password, password_confirmation))
        try:
            response = await self.gateway.execute(ApiRequest("POST", REGISTER_PATH, body=body))
        except Exception as e:
            logger.error(f"Registration for '{username}' failed: {e}", exc_info=True)
            return False

        if not response.is_success:
            logger.info(f"Registration rejected with HTTP {response.status_code}: {response_payload(response)}")
        return response.is_success

    async def logout(self) -> None:
        """Ends the session locally, telling the backend on a best-effort basis."""
        try:
            token = await self.current_token()
            if token:
                response = await self.gateway.execute(ApiRequest("POST", LOGOUT_PATH, token=token))
                if not response.is_success:
                    logger.info(f"Server-side logout returned HTTP {response.status_code}")
        except Exception as e:
            logger.warning(f"Server-side logout failed, clearing local session anyway: {e}")
        finally:
            await self._clear_local_session()
            logger.info("Logged out")
            self._notify("logout")

    async def refresh_current_user(self) -> Optional[User]:
        """Fetches the profile for the stored token.

        Returns None without a network call when no token is stored. A 401
        invalidates the session; any other failure is soft and changes nothing.
        """
        token = await self.current_token()
        if not token:
            return None

        try:
            response = await self.gateway.execute(ApiRequest("GET", CURRENT_USER_PATH, token=token))
            if response.status_code == 401:
                await self.invalidate_session()
                return None
            if not response.is_success:
                logger.info(f"Current user refresh returned HTTP {response.status_code}")
                return None
            user = decode_user(response.json())
        except Exception as e:
            logger.error(f"Current user refresh failed: {e}", exc_info=True)
            return None

        self._current_session = Session(token=token, user=user)
        self._notify("refresh")
        return user
