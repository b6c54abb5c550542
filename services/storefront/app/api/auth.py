"""
Storefront — Auth API routes
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_session_context
from app.core.config import get_settings
from app.core.security import ROLE_KANTIN, ROLE_SUPERADMIN
from app.core.session import InvalidCredentials, LoginResult, SessionContext
from app.gateway.errors import GatewayError
from app.schemas.auth import AdminLoginRequest, LoginRequest, SessionResponse, TokenResponse
from app.schemas.kantin import KantinPublic

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(result: LoginResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.token,
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=result.session.role,
        subject=result.session.subject,
        kantin=KantinPublic.model_validate(result.kantin) if result.kantin else None,
    )


def _invalid(exc: InvalidCredentials) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=exc.message,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/kantin/login", response_model=TokenResponse)
async def kantin_login(payload: LoginRequest, context: SessionContext = Depends(get_session_context)):
    """Check vendor credentials against the accounts sheet and issue a JWT."""
    try:
        result = await context.login(ROLE_KANTIN, payload.model_dump())
    except InvalidCredentials as exc:
        raise _invalid(exc)
    except GatewayError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)
    return _token_response(result)


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(payload: AdminLoginRequest, context: SessionContext = Depends(get_session_context)):
    try:
        result = await context.login(ROLE_SUPERADMIN, payload.model_dump())
    except InvalidCredentials as exc:
        raise _invalid(exc)
    return _token_response(result)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(context: SessionContext = Depends(get_session_context)):
    await context.logout()


@router.get("/me", response_model=SessionResponse)
async def me(context: SessionContext = Depends(get_session_context)):
    session = context.current_session()
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")
    return SessionResponse(
        role=session.role,
        subject=session.subject,
        name=session.name,
        kantin_id=session.kantin_id,
        expires_in=session.expires_in,
    )
