from typing import Dict, List
import os

from fastapi import Depends, HTTPException, status, Request
from jose import jwt
from jose.exceptions import JWTError, ExpiredSignatureError, JWTClaimsError
from dotenv import load_dotenv

load_dotenv()

# Tokens are issued by the hospital's identity provider; this service only
# verifies them and reads the subject and groups.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")

GROUPS_CLAIM = "groups"


def get_current_user(request: Request) -> Dict[str, any]:
    """
    FastAPI dependency to validate the JWT from the Authorization header.

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

    token = parts[1]
    options = {"verify_aud": JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
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


def get_user_identifier(user: Dict[str, any]) -> str:
    """Actor id recorded in created_by / approved_by / reversed_by."""
    return user.get("sub") or user.get("username") or user.get("email") or "unknown"


def require_group(groups: List[str]):
    """Dependency factory: the caller must belong to at least one of ``groups``."""
    def checker(user: Dict[str, any] = Depends(get_current_user)) -> Dict[str, any]:
        user_groups = user.get(GROUPS_CLAIM) or []
        if not any(group in user_groups for group in groups):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires membership in one of: {', '.join(groups)}",
            )
        return user
    return checker


ACCOUNTING_GROUPS = ["admin", "accountant"]

# Ledger mutations are limited to finance staff; reads only need a valid token.
require_accounting = require_group(ACCOUNTING_GROUPS)
