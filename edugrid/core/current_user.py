import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from edugrid.core import config
from edugrid.core.security import decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    email: str
    name: str | None = None
    source: str = "token"  # "token" | "header" | "query"


def _clean_email(value) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    """
    Resolve who is calling, most trusted source first:
    a verified bearer token, then the `user-email` header, then `userEmail` query.
    """
    if credentials is not None:
        claims = decode_access_token(credentials.credentials)
        email = _clean_email(claims.get("email")) if claims else None
        if not email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return Identity(email=email, name=claims.get("name"), source="token")

    if config.TRUST_UNVERIFIED_IDENTITY:
        email = _clean_email(request.headers.get("user-email"))
        if email:
            return Identity(email=email, source="header")

        email = _clean_email(request.query_params.get("userEmail"))
        if email:
            return Identity(email=email, source="query")

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="User authentication required",
    )
