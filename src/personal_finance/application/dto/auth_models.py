"""Pydantic models for auth endpoint request and response contracts."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class SignupRequest(StrictModel):
    """HTTP request model for account creation."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginRequest(StrictModel):
    """HTTP request model for credential login."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshTokenRequest(StrictModel):
    """HTTP request model carrying one raw refresh token (refresh and logout)."""

    refresh_token: str = Field(min_length=1, alias="refreshToken")


class UserSummaryResponse(StrictModel):
    """Public user fields; never includes credential material."""

    id: UUID
    name: str
    email: str


class TokenEnvelopeResponse(StrictModel):
    """HTTP response model for signup, login and refresh.

    `token` repeats `accessToken` for clients of the earlier API.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    message: str
    token: str
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    user: UserSummaryResponse


class MessageResponse(StrictModel):
    """HTTP response model for message-only endpoints."""

    message: str
