"""FastAPI router for signup, login, token refresh, logout and caller lookup."""

from __future__ import annotations

import logging
from typing import Annotated, NoReturn, TypeVar

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import ValidationError as PayloadValidationError

from personal_finance.application.dto.auth_models import (
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    SignupRequest,
    StrictModel,
    TokenEnvelopeResponse,
    UserSummaryResponse,
)
from personal_finance.application.services.auth_errors import (
    AuthenticationError,
    AuthServiceError,
    ConflictError,
    ValidationError,
)
from personal_finance.application.services.auth_service import (
    AuthService,
    IssuedTokens,
    UserSummary,
)
from personal_finance.infrastructure.http.auth_guard import (
    AccessTokenGuard,
    InvalidAuthTokenError,
    MissingAuthTokenError,
)

RequestModelT = TypeVar("RequestModelT", bound=StrictModel)

logger = logging.getLogger(__name__)


def build_auth_router(*, auth_service: AuthService) -> APIRouter:
    """Build router exposing the auth endpoints under `/api/auth`."""

    router = APIRouter(prefix="/api/auth", tags=["auth"])
    access_guard = AccessTokenGuard(auth_service=auth_service)

    @router.post("/signup", response_model=TokenEnvelopeResponse, status_code=201)
    async def signup(request: Request) -> TokenEnvelopeResponse:
        payload = await _parse_body(request, SignupRequest)
        try:
            tokens = await auth_service.signup(
                name=payload.name,
                email=payload.email,
                password=payload.password,
            )
        except AuthServiceError as exc:
            _raise_http_for_auth_error(exc)
        return _to_envelope("User created successfully", tokens)

    @router.post("/login", response_model=TokenEnvelopeResponse)
    async def login(request: Request) -> TokenEnvelopeResponse:
        payload = await _parse_body(request, LoginRequest)
        try:
            tokens = await auth_service.login(email=payload.email, password=payload.password)
        except AuthServiceError as exc:
            _raise_http_for_auth_error(exc)
        return _to_envelope("Login successful", tokens)

    @router.post("/refresh", response_model=TokenEnvelopeResponse)
    async def refresh(request: Request) -> TokenEnvelopeResponse:
        payload = await _parse_body(request, RefreshTokenRequest)
        try:
            tokens = await auth_service.refresh(refresh_token=payload.refresh_token)
        except AuthServiceError as exc:
            _raise_http_for_auth_error(exc)
        return _to_envelope("Token refreshed", tokens)

    @router.post("/logout", response_model=MessageResponse)
    async def logout(request: Request) -> MessageResponse:
        payload = await _parse_body(request, RefreshTokenRequest)
        try:
            await auth_service.logout(refresh_token=payload.refresh_token)
        except AuthServiceError as exc:
            _raise_http_for_auth_error(exc)
        return MessageResponse(message="Logged out successfully")

    @router.get("/me", response_model=UserSummaryResponse)
    async def me(
        authorization: Annotated[str | None, Header()] = None,
    ) -> UserSummaryResponse:
        try:
            user = await access_guard.require_user(authorization_header=authorization)
        except MissingAuthTokenError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except InvalidAuthTokenError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except AuthServiceError as exc:
            _raise_http_for_auth_error(exc)
        return _to_user_response(user)

    return router


async def _parse_body(request: Request, model: type[RequestModelT]) -> RequestModelT:
    """Validate the raw JSON body against one typed request model."""

    raw_body = await request.body()
    try:
        return model.model_validate_json(raw_body)
    except PayloadValidationError as error:
        raise HTTPException(
            status_code=400,
            detail=describe_payload_error(error),
        ) from error


def describe_payload_error(error: PayloadValidationError) -> str:
    """Summarize a payload validation failure by naming the offending fields."""

    missing: list[str] = []
    invalid: list[str] = []
    for item in error.errors():
        location = item.get("loc") or ()
        if not location:
            return "request body must be a JSON object"
        field_name = str(location[-1])
        target = missing if item.get("type") == "missing" else invalid
        if field_name not in target:
            target.append(field_name)

    parts: list[str] = []
    if missing:
        parts.append(f"missing required fields: {', '.join(missing)}")
    if invalid:
        parts.append(f"invalid fields: {', '.join(invalid)}")
    return "; ".join(parts)


def _raise_http_for_auth_error(error: AuthServiceError) -> NoReturn:
    """Map classified auth outcomes into HTTP response semantics."""

    if isinstance(error, ValidationError):
        raise HTTPException(status_code=400, detail=str(error)) from error
    if isinstance(error, ConflictError):
        raise HTTPException(status_code=409, detail=str(error)) from error
    if isinstance(error, AuthenticationError):
        raise HTTPException(status_code=401, detail=str(error)) from error
    logger.error("auth_request_failed error_type=%s", type(error).__name__)
    raise HTTPException(status_code=500, detail="server error") from error


def _to_user_response(user: UserSummary) -> UserSummaryResponse:
    return UserSummaryResponse(id=user.user_id, name=user.name, email=user.email)


def _to_envelope(message: str, tokens: IssuedTokens) -> TokenEnvelopeResponse:
    return TokenEnvelopeResponse(
        message=message,
        token=tokens.access_token,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=_to_user_response(tokens.user),
    )
