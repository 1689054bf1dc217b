from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from headway.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ALGO = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _encode(subject: str, token_type: str, lifetime: timedelta, role: str | None) -> str:
    payload = {"sub": subject, "type": token_type, "exp": datetime.now(timezone.utc) + lifetime}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def create_access_token(subject: str, role: str | None = None) -> str:
    return _encode(subject, "access", timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES), role)


def create_refresh_token(subject: str) -> str:
    return _encode(subject, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), None)


def decode_token(token: str, expected_type: str = "access") -> dict:
    """Decode and check the token type; raises JWTError on any mismatch."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])
    if payload.get("type") != expected_type:
        raise JWTError(f"expected {expected_type} token")
    return payload
