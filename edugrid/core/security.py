from datetime import datetime, timezone

from jose import JWTError, jwt

from edugrid.core.config import ACCESS_TOKEN_EXPIRE, ALGORITHM, SECRET_KEY


def create_access_token(data: dict, expires_delta=None) -> str:
    to_encode = dict(data)
    expire = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_EXPIRE)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Claims of a valid token, or None when the signature or expiry check fails."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
