"""
SpotMap Backend: Auth Route Handlers
=====================================

What:  Sign-up, sign-in, sign-out and "who am I" for bearer-token sessions.
Why:   Clients need a token before they can comment or be credited for a spot.
How:   Each handler receives the request's AuthSession (built from the
       Authorization header) and performs one transition on it.
Who:   The sign-in/sign-up forms and any client holding a token.

Token use:
    Authorization: Bearer <access_token from signup/signin>
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spotmap.database import get_db_session
from spotmap.schemas.auth import (
    Identity,
    MessageResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
)
from spotmap.schemas.common import ErrorResponse
from spotmap.services.auth_session import AuthSession, get_auth_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/signup",
    status_code=201,
    response_model=SessionResponse,
    responses={
        400: {"description": "Password too short", "model": ErrorResponse},
        401: {"description": "Email already in use", "model": ErrorResponse},
    },
    summary="Create an account and sign in",
)
async def sign_up(
    body: SignUpRequest,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    identity = await session.sign_up(db, body.email, body.password, body.display_name)
    return SessionResponse(access_token=session.token, identity=identity)


@router.post(
    "/signin",
    response_model=SessionResponse,
    responses={401: {"description": "Incorrect email or password", "model": ErrorResponse}},
    summary="Sign in with email and password",
)
async def sign_in(
    body: SignInRequest,
    session: AuthSession = Depends(get_auth_session),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    identity = await session.sign_in(db, body.email, body.password)
    return SessionResponse(access_token=session.token, identity=identity)


@router.post(
    "/signout",
    response_model=MessageResponse,
    summary="Sign out and revoke the bearer token",
)
async def sign_out(session: AuthSession = Depends(get_auth_session)) -> MessageResponse:
    await session.sign_out()
    return MessageResponse(message="Signed out")


@router.get(
    "/me",
    response_model=Identity,
    responses={401: {"description": "Not signed in", "model": ErrorResponse}},
    summary="The signed-in identity",
)
async def me(session: AuthSession = Depends(get_auth_session)) -> Identity:
    return session.require_identity()
