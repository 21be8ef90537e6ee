"""
SpotMap Backend: Identity Service
==================================

What:  Email + password accounts and the bearer tokens that represent a
       signed-in session.
Why:   Spots and comments carry a creator; that creator has to be someone
       who proved who they are.
How:   Accounts live in the `users` table. Passwords are stored as salted
       PBKDF2-SHA256 hashes. Tokens are HS256 JWTs (python-jose) carrying the
       user id (`sub`) and a token id (`jti`); signing out puts the `jti` on
       an in-process deny list until the token would have expired anyway.
Who:   Used by AuthSession; never called by routes directly.
"""

import asyncio
import functools
import hashlib
import hmac
import logging
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.config import settings
from spotmap.exceptions import AuthenticationError, DatabaseError, ValidationError
from spotmap.models.user import User
from spotmap.schemas.auth import Identity

logger = logging.getLogger(__name__)

HASH_SCHEME = "pbkdf2_sha256"


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    rounds = iterations or settings.password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"{HASH_SCHEME}${rounds}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        scheme, rounds, salt_hex, digest_hex = encoded.split("$")
        if scheme != HASH_SCHEME:
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(rounds)
        )
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


async def _off_loop(fn, *args):
    """Run a CPU-bound hash call on the default executor."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args))


def _to_identity(user: User) -> Identity:
    return Identity(uid=user.id, email=user.email, display_name=user.display_name)


class IdentityService:
    """
    The identity provider behind AuthSession.

    State:
        _revoked: jti → expiry timestamp of signed-out tokens. Entries are
        pruned once the token has expired. Single-process only, like the
        rate limiter.
    """

    def __init__(self):
        self._revoked: Dict[str, float] = {}

    # ── Accounts ──────────────────────────────────────────────────────────

    async def sign_up(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> Identity:
        """
        Create an account and return its identity.

        Raises:
            ValidationError: Password shorter than password_min_length
            AuthenticationError(reason="email_in_use"): Email already registered
            DatabaseError: Store unavailable
        """
        if len(password) < settings.password_min_length:
            raise ValidationError(
                message=f"Password must be at least {settings.password_min_length} characters.",
                field="password",
            )

        normalized = email.strip().lower()
        try:
            existing = await db.execute(select(User).where(User.email == normalized))
            if existing.scalar_one_or_none() is not None:
                raise AuthenticationError(
                    message="An account with this email already exists.",
                    reason="email_in_use",
                )

            password_hash = await _off_loop(hash_password, password)
            user = User(
                id=str(uuid.uuid4()),
                email=normalized,
                display_name=(display_name or "").strip() or None,
                password_hash=password_hash,
            )
            db.add(user)
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent sign-up for the same email.
            raise AuthenticationError(
                message="An account with this email already exists.",
                reason="email_in_use",
            )
        except SQLAlchemyError as e:
            logger.error("Sign-up failed for %s: %s", normalized, str(e))
            raise DatabaseError(context={"operation": "sign_up"})

        logger.info("Account created: %s", user.id)
        return _to_identity(user)

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> Identity:
        """
        Raises:
            AuthenticationError(reason="invalid_credentials"): Unknown email or wrong password
            DatabaseError: Store unavailable
        """
        normalized = email.strip().lower()
        try:
            result = await db.execute(select(User).where(User.email == normalized))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Sign-in lookup failed: %s", str(e))
            raise DatabaseError(context={"operation": "sign_in"})

        if user is None or not await _off_loop(verify_password, password, user.password_hash):
            logger.info("Rejected sign-in for %s", normalized)
            raise AuthenticationError(
                message="Incorrect email or password.",
                reason="invalid_credentials",
            )
        return _to_identity(user)

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, identity: Identity) -> str:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_access_token_expire_minutes
        )
        claims = {
            "sub": identity.uid,
            "jti": uuid.uuid4().hex,
            "exp": expire,
            "type": "access",
        }
        return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    def _decode(self, token: str) -> Optional[dict]:
        try:
            claims = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
            )
        except JWTError:
            return None
        if claims.get("type") != "access" or not claims.get("sub"):
            return None
        return claims

    async def resolve_token(self, db: AsyncSession, token: str) -> Optional[Identity]:
        """
        Map a bearer token to its identity.

        Returns None for invalid, expired, revoked tokens and for tokens
        whose account no longer exists.
        """
        claims = self._decode(token)
        if claims is None or self.is_revoked(claims.get("jti", "")):
            return None

        try:
            result = await db.execute(select(User).where(User.id == claims["sub"]))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Token resolution failed: %s", str(e))
            raise DatabaseError(context={"operation": "resolve_token"})

        return _to_identity(user) if user is not None else None

    def revoke_token(self, token: str) -> None:
        claims = self._decode(token)
        if claims is None:
            return
        self._prune_revoked()
        self._revoked[claims["jti"]] = float(claims.get("exp", time.time()))
        logger.info("Token revoked for user %s", claims["sub"])

    def is_revoked(self, jti: str) -> bool:
        return jti in self._revoked

    def _prune_revoked(self) -> None:
        now = time.time()
        expired = [jti for jti, exp in self._revoked.items() if exp < now]
        for jti in expired:
            del self._revoked[jti]


identity_service = IdentityService()
