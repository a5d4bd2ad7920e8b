"""
Authentication: JWT validation and current user dependency.

Tokens are issued at sign-in (out of scope here) and signed with JWT_SECRET.
The "_id" claim is the MongoDB id of the User. The token may come as a Bearer
header or as the "token" cookie set by the sign-in flow.
"""

import logging
from typing import Annotated, Any, Optional

import jwt
from beanie import PydanticObjectId
from bson import ObjectId
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pdfqa.config import get_settings
from pdfqa.models.user import CurrentUser, User

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, Any]:
    """Verify signature and expiry; return the claims."""
    return jwt.decode(token, secret, algorithms=[algorithm])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> CurrentUser:
    """
    Dependency: validate the JWT and return the corresponding User from MongoDB.
    """
    token = credentials.credentials if credentials else request.cookies.get("token")
    if not token:
        raise _unauthorized("Access denied. No token provided.")

    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured (JWT_SECRET required).",
        )

    try:
        payload = decode_token(token, settings.jwt_secret, settings.jwt_algorithm)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise _unauthorized("Invalid token")

    user_id = payload.get("_id")
    if not user_id or not ObjectId.is_valid(str(user_id)):
        raise _unauthorized("Token missing user id")

    user = await User.get(PydanticObjectId(str(user_id)))
    if not user:
        raise _unauthorized("User not found")

    return CurrentUser(id=str(user.id), email=user.email, name=user.name)
