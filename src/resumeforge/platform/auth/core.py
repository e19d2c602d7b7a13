"""
Auth core - JWT bearer authentication for the API.

Tokens are HS256 JWTs handled with Authlib. Every admin endpoint depends on
``require_admin``; preview endpoints only need ``get_current_user``.
"""

import secrets
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Annotated, Any, cast

import structlog
from authlib.jose import JoseError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from resumeforge.platform.settings import settings

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenType(str, Enum):
    """Token types."""

    ACCESS = "access"


class UserInfo(BaseModel):
    """User information decoded from an access token.

    User IDs are stored as strings for JWT/HTTP compatibility; convert with
    ``int(current_user.user_id)`` before querying integer keys.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str
    email: EmailStr | None = None
    username: str | None = None
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return settings.jwt.admin_role in self.roles


class JWTService:
    """Minimal JWT service using Authlib."""

    def __init__(self, secret: str | None = None, algorithm: str | None = None):
        self.secret = secret or settings.jwt.secret_key
        self.algorithm = algorithm or settings.jwt.algorithm
        self.header = {"alg": self.algorithm}

    def create_access_token(
        self,
        subject: str,
        additional_claims: dict[str, Any] | None = None,
        expire_minutes: int | None = None,
    ) -> str:
        """Create access token."""
        now = datetime.now(UTC)
        expires_delta = timedelta(
            minutes=expire_minutes or settings.jwt.access_token_expire_minutes
        )
        data: dict[str, Any] = {
            "sub": subject,
            "type": TokenType.ACCESS.value,
            "iss": settings.jwt.issuer,
            "iat": now,
            "exp": now + expires_delta,
            "jti": secrets.token_urlsafe(16),
        }
        if additional_claims:
            data.update(additional_claims)

        token = jwt.encode(self.header, data, self.secret)
        return token.decode("utf-8") if isinstance(token, bytes) else token

    def verify_token(self, token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
        """Verify and decode token.

        Raises:
            HTTPException: If the token is invalid, expired or of the wrong type
        """
        try:
            claims_raw = jwt.decode(token, self.secret)
            claims_raw.validate()
            claims = cast(dict[str, Any], dict(claims_raw))

            if expected_type:
                token_type = claims.get("type")
                if token_type != expected_type.value:
                    raise JoseError(
                        f"Invalid token type. Expected {expected_type.value}, got {token_type}"
                    )

            return claims
        except JoseError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {e}",
                headers={"WWW-Authenticate": "Bearer"},
            )


jwt_service = JWTService()


def _claims_to_user_info(claims: dict) -> UserInfo:
    """Convert JWT claims to UserInfo."""
    return UserInfo(
        user_id=str(claims.get("sub", "")),
        email=claims.get("email"),
        username=claims.get("username"),
        roles=claims.get("roles", []),
        permissions=claims.get("permissions", []),
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserInfo:
    """Get the current user from the Bearer token."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = jwt_service.verify_token(credentials.credentials, TokenType.ACCESS)
    return _claims_to_user_info(claims)


async def require_admin(
    current_user: Annotated[UserInfo, Depends(get_current_user)],
) -> UserInfo:
    """Require the admin role."""
    if not current_user.is_admin:
        logger.warning("Admin access denied", user_id=current_user.user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


def create_access_token(user_id: str, **kwargs: Any) -> str:
    """Create access token."""
    return jwt_service.create_access_token(user_id, **kwargs)
