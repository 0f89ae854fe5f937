"""
Google sign-in: verify an id_token and upsert the user it identifies.

The id_token is verified cryptographically with Google's public keys
(google-auth). Google access/refresh tokens are never stored.
"""

import logging
from datetime import datetime, timezone

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.db.models import AuthIdentity, User
from app.exceptions import Unauthenticated

logger = logging.getLogger(__name__)
settings = get_settings()

GOOGLE_PROVIDER = "google"
_GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class AuthService:
    def verify_google_token(self, token: str) -> dict:
        """
        Verify a Google id_token and return its claims (sub, email, name).

        Raises:
            Unauthenticated: signature, expiry, audience or issuer check failed
        """
        try:
            idinfo = google_id_token.verify_oauth2_token(
                token,
                google_requests.Request(),
                settings.google_client_id,
            )
            if idinfo.get("iss") not in _GOOGLE_ISSUERS:
                raise ValueError("Invalid issuer")
        except ValueError as e:
            logger.info("Rejected Google id_token: %s", e)
            raise Unauthenticated("Invalid Google id_token") from e

        email = idinfo.get("email")
        # Unverified emails could be used to hijack an account through linking
        if email and not idinfo.get("email_verified", False):
            email = None

        return {
            "sub": idinfo["sub"],
            "email": email,
            "name": idinfo.get("name", email or "Unknown User"),
        }

    async def upsert_google_user(self, db: AsyncSession, claims: dict) -> User:
        """
        Find or create the user behind a verified Google identity.

        A new identity is linked to an existing user with the same verified
        email; otherwise a new user is created.
        """
        email = claims.get("email")
        result = await db.execute(
            select(AuthIdentity)
            .options(selectinload(AuthIdentity.user))
            .where(
                AuthIdentity.provider == GOOGLE_PROVIDER,
                AuthIdentity.provider_user_id == claims["sub"],
            )
        )
        identity = result.scalar_one_or_none()

        if identity is not None:
            identity.last_login_at = datetime.now(timezone.utc)
            if email:
                identity.email = email
            user = identity.user
        else:
            user = None
            if email:
                result = await db.execute(select(User).where(User.email == email.lower()))
                user = result.scalar_one_or_none()

            if user is None:
                user = User(email=email.lower() if email else None, name=claims["name"])
                db.add(user)
                await db.flush()
                logger.info("Created user %s", user.id)

            db.add(
                AuthIdentity(
                    user_id=user.id,
                    provider=GOOGLE_PROVIDER,
                    provider_user_id=claims["sub"],
                    email=email,
                )
            )

        await db.commit()
        return user


# Singleton instance
auth_service = AuthService()
