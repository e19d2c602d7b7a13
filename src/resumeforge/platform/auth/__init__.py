"""
Authentication for the platform API.
"""

from resumeforge.platform.auth.core import (
    JWTService,
    UserInfo,
    create_access_token,
    get_current_user,
    jwt_service,
    require_admin,
)

__all__ = [
    "JWTService",
    "UserInfo",
    "create_access_token",
    "get_current_user",
    "jwt_service",
    "require_admin",
]
