from __future__ import annotations

import asyncio
from typing import Any

import jwt
import structlog
from jwt import PyJWKClient
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitecraft.config import settings
from sitecraft.errors import AuthenticationError
from sitecraft.models.user import User

logger = structlog.get_logger(__name__)

_PROFILE_CLAIMS = ("email", "name", "image")


class AuthService:
    """Verifies session JWTs issued by the auth server and resolves users.

    Authentication itself lives in the external auth server; this class only
    checks signatures against its JWKS and mirrors the user row locally so
    projects and domains can reference it.
    """

    def __init__(self, better_auth_url: str, better_auth_internal_url: str | None = None):
        self.issuer = better_auth_url.rstrip("/")
        internal_base_url = (better_auth_internal_url or better_auth_url).rstrip("/")
        self.jwks_client = PyJWKClient(
            f"{internal_base_url}/api/auth/jwks",
            cache_keys=True,
            max_cached_keys=16,
            lifespan=300,  # seconds
        )

    async def verify_token(self, token: str) -> dict[str, Any]:
        # PyJWKClient fetches keys with blocking urllib
        return await asyncio.to_thread(self._verify_token_sync, token)

    def _verify_token_sync(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["EdDSA"],
                audience=self.issuer,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired") from exc
        except PyJWKClientError as exc:
            logger.warning("jwks_lookup_failed", error=str(exc))
            raise AuthenticationError(f"Token verification failed: {exc}") from exc
        except InvalidTokenError as exc:
            raise AuthenticationError(f"Invalid token: {exc}") from exc

    async def get_user_from_token(self, token: str, db: AsyncSession) -> User:
        return await self.sync_user(await self.verify_token(token), db)

    async def sync_user(self, claims: dict[str, Any], db: AsyncSession) -> User:
        """Create or refresh the local user row from verified token claims."""
        user_id = claims.get("userId") or claims.get("user_id") or claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token missing user ID")

        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            if not claims.get("email"):
                raise AuthenticationError("Token missing email")
            user = User(id=user_id, **{key: claims.get(key) for key in _PROFILE_CLAIMS})
            db.add(user)
            await db.commit()
            await db.refresh(user)
            logger.info("user_created_from_token", user_id=user_id)
            return user

        changed = {
            key: claims[key]
            for key in _PROFILE_CLAIMS
            if claims.get(key) and claims[key] != getattr(user, key)
        }
        if changed:
            for key, value in changed.items():
                setattr(user, key, value)
            await db.commit()
            await db.refresh(user)
            logger.info("user_profile_refreshed", user_id=user_id, fields=sorted(changed))
        return user


auth_service = AuthService(
    better_auth_url=settings.better_auth_url,
    better_auth_internal_url=settings.better_auth_internal_url,
)
