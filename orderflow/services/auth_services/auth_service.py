# orderflow/services/auth_services/auth_service.py
import logging
from datetime import timedelta
from typing import Dict
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import update

from orderflow.models.user_models import User, RefreshToken
from orderflow.core.security import (
    REFRESH,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    user_claims,
    verify_password,
)
from orderflow.core.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES,
)
from orderflow.utils.check_roles import ADMIN_ROLES
from orderflow.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalars().first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")
    return user


def _access_token_for(user: User) -> str:
    expire_minutes = (
        ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES
        if user.role in ADMIN_ROLES
        else ACCESS_TOKEN_EXPIRE_MINUTES
    )
    return create_access_token(
        user_claims(user),
        token_version=user.token_version,
        expires_delta=timedelta(minutes=expire_minutes),
    )


async def create_tokens(db: AsyncSession, user: User):
    """
    Create new access and refresh tokens.
    Includes token_version to support immediate logout invalidation.
    """
    access_token = _access_token_for(user)
    refresh_token = create_refresh_token({"sub": user.email, "user_id": user.id})

    db.add(RefreshToken(user_id=user.id, token=refresh_token))
    user.last_login = utcnow()
    await db.commit()
    logger.info("User %s logged in", user.email)

    return access_token, refresh_token


async def refresh_access_token(db: AsyncSession, old_refresh_token: str) -> Dict:
    """
    Rotate refresh token: must find the DB record and ensure it is not revoked.
    Marks old token revoked and issues a new refresh token record.
    """
    try:
        decode_token(old_refresh_token, REFRESH)
    except TokenError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token == old_refresh_token)
    )
    db_token = result.scalars().first()

    if not db_token or db_token.revoked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or reused refresh token",
        )
    user = db_token.user
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive.")

    db_token.revoked = True
    new_refresh_token = create_refresh_token({"sub": user.email, "user_id": user.id})
    db.add(RefreshToken(user_id=user.id, token=new_refresh_token))
    await db.commit()

    return {
        "access_token": _access_token_for(user),
        "refresh_token": new_refresh_token,
        "token_type": "bearer",
    }


async def logout_user(db: AsyncSession, user: User):
    user.token_version += 1

    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id)
        .values(revoked=True)
    )
    await db.commit()
    logger.info("User %s logged out", user.email)

    return {"msg": "Logged out successfully"}
