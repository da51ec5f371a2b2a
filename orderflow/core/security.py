# orderflow/core/security.py
"""
Password hashing and the signed tokens handed out at login.

Access tokens carry the user's role and ``token_version`` so a logout or a
deactivation invalidates every outstanding token at once. Refresh tokens get a
random ``jti`` so two issued in the same second are still distinct rows.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from orderflow.core.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET, REFRESH_TOKEN_EXPIRE_DAYS
)

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(ValueError):
    """Token is malformed, expired, badly signed or of the wrong type."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def user_claims(user) -> Dict:
    return {"sub": user.email, "user_id": user.id, "role": user.role}


def _sign(claims: Dict, token_type: str, lifetime: timedelta, **extra) -> str:
    issued = datetime.now(timezone.utc)
    payload = {**claims, **extra, "type": token_type, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_access_token(data: Dict, token_version: int, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return _sign(data, ACCESS, lifetime, token_version=token_version)


def create_refresh_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    return _sign(data, REFRESH, lifetime, jti=uuid.uuid4().hex)


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise TokenError("Invalid or expired token")
    if expected_type and payload.get("type") != expected_type:
        raise TokenError("Invalid token type")
    if not payload.get("sub"):
        raise TokenError("Invalid token payload")
    return payload
