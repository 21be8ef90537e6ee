"""
SpotMap Backend: Auth Session
==============================

What:  An explicit session object holding the current identity (or none)
       and notifying subscribers when it changes.
Why:   Several parts of one request react to sign-in and sign-out; they all
       read the same session instead of re-decoding the token.
How:   One AuthSession is built per request from the bearer token
       (`get_auth_session` dependency) and handed to every view and route
       that needs the caller's identity. There is no module-level "current
       user": code that needs the identity receives the session.
Who:   Views (create, detail, comment), auth routes.

Transitions:
    signed out ──sign_in/sign_up──▶ signed in ──sign_out──▶ signed out

    Listeners registered with on_identity_change() are called with the new
    identity (or None) on every transition, in registration order. Each
    registration returns an unsubscribe handle.
"""

import logging
from typing import Callable, List, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.database import get_db_session
from spotmap.exceptions import AuthenticationError
from spotmap.schemas.auth import Identity
from spotmap.services.identity_service import IdentityService, identity_service

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]

bearer_scheme = HTTPBearer(auto_error=False)


class AuthSession:
    """
    The caller's session: at most one identity at a time.

    Attributes:
        token: bearer token of the current identity, None when signed out
    """

    def __init__(
        self,
        provider: IdentityService,
        identity: Optional[Identity] = None,
        token: Optional[str] = None,
    ):
        self._provider = provider
        self._identity = identity
        self.token = token if identity is not None else None
        self._listeners: List[IdentityListener] = []

    # ── Snapshot & Subscription ───────────────────────────────────────────

    def current_identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_signed_in(self) -> bool:
        return self._identity is not None

    def require_identity(self, message: str = "Please sign in to continue") -> Identity:
        """The current identity, or AuthenticationError(reason="not_signed_in")."""
        if self._identity is None:
            raise AuthenticationError(message=message, reason="not_signed_in")
        return self._identity

    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        """
        Register a listener for sign-in/sign-out transitions.

        Returns:
            unsubscribe(): removes this registration; safe to call twice.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _transition(self, identity: Optional[Identity], token: Optional[str]) -> None:
        previous = self._identity
        self._identity = identity
        self.token = token
        if previous == identity:
            return
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity listener %r failed", listener)

    # ── Identity Operations ───────────────────────────────────────────────

    async def sign_up(
        self, db: AsyncSession, email: str, password: str, display_name: str
    ) -> Identity:
        identity = await self._provider.sign_up(db, email, password, display_name)
        self._transition(identity, self._provider.issue_token(identity))
        return identity

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> Identity:
        identity = await self._provider.sign_in(db, email, password)
        self._transition(identity, self._provider.issue_token(identity))
        return identity

    async def sign_out(self) -> bool:
        if self.token:
            self._provider.revoke_token(self.token)
        self._transition(None, None)
        return True


async def get_auth_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> AuthSession:
    """
    FastAPI dependency: the caller's AuthSession.

    A missing, invalid, expired or revoked token yields a signed-out session
    rather than an error; operations that need an identity call
    require_identity().
    """
    if credentials is None:
        return AuthSession(identity_service)

    identity = await identity_service.resolve_token(db, credentials.credentials)
    if identity is None:
        logger.debug("Ignoring unusable bearer token")
        return AuthSession(identity_service)
    return AuthSession(identity_service, identity=identity, token=credentials.credentials)
