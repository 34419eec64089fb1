import os
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError, jwt
from dotenv import load_dotenv

load_dotenv()

SECRET_KEY = os.getenv("JWT_SECRET")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 60))
TOKEN_TYPE = "access"


def _require_secret() -> str:
    if not SECRET_KEY:
        raise EnvironmentError(
            "JWT_SECRET is not set. Add it to your .env file (see .env.example)."
        )
    return SECRET_KEY


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token for *user_id*.

    The token carries the user id as ``sub`` and ``typ="access"``; it expires
    after ACCESS_TOKEN_EXPIRE_MINUTES unless *expires_delta* is given.
    """
    issued_at = datetime.utcnow()
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "typ": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
    }
    return jwt.encode(claims, _require_secret(), algorithm=ALGORITHM)


def verify_access_token(token: str) -> Optional[int]:
    """Return the user id of a valid session token, or None.

    Expired, tampered, foreign-typed and non-numeric-subject tokens are all
    rejected the same way. Without a configured secret nothing verifies.
    """
    if not SECRET_KEY or not token:
        return None
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    subject = claims.get("sub")
    if claims.get("typ") != TOKEN_TYPE or not isinstance(subject, str) or not subject.isdigit():
        return None
    return int(subject)
