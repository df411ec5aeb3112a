from datetime import datetime, timedelta, timezone

from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

from docs_agent.core.config import get_settings

settings = get_settings()


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    type: str | None = None  # absent on tokens minted by the external auth service


def create_access_token(subject: str, expires_minutes: int = 60) -> str:
    """Create an access token for a caller identity."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": subject,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> TokenPayload | None:
    """Verify a JWT access token and return the payload, or None if invalid."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        return None

    if payload.get("type") not in (None, "access") or not payload.get("sub"):
        return None
    try:
        return TokenPayload(**payload)
    except ValidationError:
        return None
