import logging

import redis
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from headway.core.errors import RateLimitError
from headway.core.security import decode_token
from headway.db.session import get_db
from headway.models.user import User
from headway.services.rate_limit import RateLimiter, booking_rule, client_identifier, get_rate_limiter

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user

def require_roles(*roles: str):
    def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard

def booking_rate_limit(scope: str):
    """Throttle booking initiation per client IP. Fails open if Redis is unreachable."""
    def _check(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        key = f"{scope}:{client_identifier(request)}"
        try:
            result = limiter.hit(key, booking_rule())
        except redis.RedisError as e:
            logger.warning("Rate limiter unavailable, allowing %s: %s", key, e)
            return
        if not result.allowed:
            raise RateLimitError(retry_after=result.reset_in)
    return _check
