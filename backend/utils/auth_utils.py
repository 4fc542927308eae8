from typing import Any, Dict, List

from fastapi import Depends, HTTPException, status, Request
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from config import settings


def get_current_user(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency to validate the bearer JWT from the Authorization header.

    Tokens are issued by the clinic's identity provider and signed with the
    shared JWT_SECRET_KEY. The decoded claims are returned as a dict.

    Usage:
        @router.get("/secure-data")
        def secure_endpoint(user: dict = Depends(get_current_user)):
            ...
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing",
        )

    # The token is expected to be in the format "Bearer <token>"
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    if not settings.JWT_SECRET_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token validation is not configured on the server.",
        )

    token = parts[1]
    options = {"verify_aud": bool(settings.JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            options=options,
        )
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except JWTClaimsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token claims: {e}"
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {e}"
        )


def get_user_identifier(user: Dict[str, Any]) -> str:
    """Human readable identifier for audit columns: email, then username, then subject."""
    if not user:
        return "unknown"
    return user.get("email") or user.get("username") or user.get("sub") or "unknown"


def get_user_groups(user: Dict[str, Any]) -> List[str]:
    groups = user.get("groups") or []
    if isinstance(groups, str):
        groups = [groups]
    return list(groups)


def require_group(allowed_groups: List[str]):
    """Dependency factory that only lets users from one of the given groups through."""

    def checker(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not set(get_user_groups(user)) & set(allowed_groups):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User is not in any of the required groups: {', '.join(allowed_groups)}",
            )
        return user

    return checker
