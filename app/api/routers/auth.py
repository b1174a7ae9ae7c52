from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_auth_session_manager
from app.api.schemas.auth import (
    AuthResultResponse,
    AuthSessionResponse,
    SessionTokensResponse,
    SessionUserResponse,
    SignInRequest,
    SignOutResponse,
    SignUpRequest,
)
from app.application.services.auth_session_manager import AuthSessionManager
from app.domain.entities.session import Session


router = APIRouter()


def _tokens(session: Session | None) -> SessionTokensResponse | None:
    if session is None:
        return None
    return SessionTokensResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
    )


@router.get("/auth/session", response_model=AuthSessionResponse)
def get_auth_session(
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    snapshot = manager.snapshot
    user = None
    if snapshot.user is not None:
        user = SessionUserResponse(
            id=snapshot.user.id,
            email=snapshot.user.email,
            metadata=snapshot.user.metadata,
        )
    return AuthSessionResponse(user=user, loading=snapshot.loading)


@router.post("/auth/sign-in", response_model=AuthResultResponse)
def sign_in(
    req: SignInRequest,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    result = manager.sign_in(email=req.email, password=req.password)
    if result.error is not None:
        return JSONResponse(status_code=401, content={"error": result.error, "message": None})
    return AuthResultResponse(error=None, session=_tokens(result.session))


@router.post("/auth/sign-up", response_model=AuthResultResponse)
def sign_up(
    req: SignUpRequest,
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    result = manager.sign_up(email=req.email, password=req.password, name=req.name)
    if result.error is not None:
        return JSONResponse(status_code=400, content={"error": result.error, "message": None})
    return AuthResultResponse(error=None, message=result.message, session=_tokens(result.session))


@router.post("/auth/sign-out", response_model=SignOutResponse)
def sign_out(
    manager: AuthSessionManager = Depends(get_auth_session_manager),
):
    manager.sign_out()
    return SignOutResponse(ok=True)
