from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)
    name: str = Field(..., min_length=1, max_length=120)


class SessionTokensResponse(BaseModel):
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None


class AuthResultResponse(BaseModel):
    error: str | None = None
    message: str | None = None
    session: SessionTokensResponse | None = None


class SessionUserResponse(BaseModel):
    id: str
    email: str | None
    metadata: dict[str, Any]


class AuthSessionResponse(BaseModel):
    user: SessionUserResponse | None
    loading: bool


class SignOutResponse(BaseModel):
    ok: bool
