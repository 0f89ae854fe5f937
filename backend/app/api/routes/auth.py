"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile

Auth Flow:
1. Frontend performs Google OAuth flow and receives an id_token
2. Frontend POSTs id_token to /auth/google
3. Backend verifies it and upserts user + auth_identity
4. Backend returns JWT (in cookie and response body)
"""

from fastapi import APIRouter, Response, status

from app.api.deps import CurrentUser, DbSession, create_access_token
from app.config import get_settings
from app.schemas.auth import GoogleAuthRequest, TokenResponse
from app.schemas.user import UserRead
from app.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _cookie_options() -> dict:
    # Cross-domain deployments need samesite="none" + secure
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> TokenResponse:
    """Exchange a Google id_token for a session JWT."""
    claims = auth_service.verify_google_token(request.id_token)
    user = await auth_service.upsert_google_user(db, claims)

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60
    response.set_cookie(
        key="access_token",
        value=access_token,
        max_age=expires_in,
        **_cookie_options(),
    )
    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication cookie.

    A JWT the client kept elsewhere stays valid until it expires.
    """
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Current user's profile; doubles as a session check."""
    return UserRead.model_validate(current_user)
