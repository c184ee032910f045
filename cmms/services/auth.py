"""
Business logic for registration, login and refresh token rotation
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cmms.config import settings
from cmms.models import Company, RefreshToken, User
from cmms.schemas import LoginRequest, RegisterRequest, UserInfo
from cmms.utils.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    get_refresh_token_expiry,
    validate_password_complexity,
    verify_password,
)

logger = logging.getLogger(__name__)

ACTION_LOGIN = "USER_LOGIN"
ACTION_SIGNUP = "USER_SIGNUP"
ACTION_REFRESH = "TOKEN_REFRESH"
ACTION_LOGOUT = "USER_LOGOUT"


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def issue_tokens(db: Session, user: User) -> Dict:
    """
    Create an access token and persist a new refresh token for the user.
    The caller commits.
    """
    access_token = create_access_token({
        "sub": user.email,
        "user_id": user.id,
        "company_id": user.company_id
    })
    refresh_token_str = create_refresh_token()
    db.add(RefreshToken(
        user_id=user.id,
        token=refresh_token_str,
        expires_at=get_refresh_token_expiry()
    ))
    return {
        "access_token": access_token,
        "refresh_token": refresh_token_str,
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
        "user": UserInfo.model_validate(user)
    }


def register_user(db: Session, data: RegisterRequest) -> Dict:
    """
    Create a company and its first admin user, then log the user in.

    Raises:
        HTTPException 400: Password does not meet complexity rules
        HTTPException 409: Email already registered
        HTTPException 500: Persistence failure
    """
    logger.info(f"Signup attempt for email '{data.email}'", extra={"action": ACTION_SIGNUP})

    if not validate_password_complexity(data.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 8 characters and contain letters and numbers"
        )

    if get_user_by_email(db, data.email):
        logger.warning(f"Signup failed: email already registered ({data.email})", extra={"action": ACTION_SIGNUP})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    try:
        company = Company(name=data.company_name.strip())
        db.add(company)
        db.flush()

        user = User(
            email=data.email,
            name=data.name.strip(),
            hashed_password=get_password_hash(data.password),
            company_id=company.id,
            role="admin"
        )
        db.add(user)
        db.flush()

        tokens = issue_tokens(db, user)
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent signup with the same email
        db.rollback()
        logger.warning(f"Signup failed: email already registered ({data.email})", extra={"action": ACTION_SIGNUP})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    except Exception as exc:
        db.rollback()
        logger.error(f"Signup failed for {data.email}: {exc}", extra={"action": ACTION_SIGNUP})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating account"
        )

    logger.info(f"User {user.id} registered with company {company.id}", extra={"action": ACTION_SIGNUP})
    return tokens


def login_user(db: Session, data: LoginRequest) -> Dict:
    """
    Authenticate a user and return access and refresh tokens

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account disabled
    """
    logger.info(f"Login attempt for email '{data.email}'", extra={"action": ACTION_LOGIN})

    user = authenticate_user(db, data.email, data.password)
    if not user:
        logger.warning(f"Login failed for {data.email}", extra={"action": ACTION_LOGIN})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    tokens = issue_tokens(db, user)
    db.commit()

    logger.info(f"User {user.id} logged in successfully", extra={"action": ACTION_LOGIN})
    return tokens


def _active_refresh_token(db: Session, token: str) -> Optional[RefreshToken]:
    return db.query(RefreshToken).filter(
        RefreshToken.token == token,
        RefreshToken.is_revoked == False,  # noqa: E712
        RefreshToken.expires_at > datetime.utcnow()
    ).first()


def refresh_tokens(db: Session, token: str) -> Dict:
    """Revoke the presented refresh token and issue a new pair"""
    stored = _active_refresh_token(db, token)
    if not stored or not stored.user or not stored.user.is_active:
        logger.warning("Refresh rejected: invalid or expired token", extra={"action": ACTION_REFRESH})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token"
        )

    stored.is_revoked = True
    stored.revoked_at = datetime.utcnow()
    tokens = issue_tokens(db, stored.user)
    db.commit()

    logger.info(f"Tokens rotated for user {stored.user_id}", extra={"action": ACTION_REFRESH})
    return tokens


def revoke_refresh_token(db: Session, token: str):
    stored = _active_refresh_token(db, token)
    if stored:
        stored.is_revoked = True
        stored.revoked_at = datetime.utcnow()
        db.commit()
        logger.info(f"User {stored.user_id} logged out", extra={"action": ACTION_LOGOUT})
