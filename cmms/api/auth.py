from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
import logging

from cmms.database import get_db
from cmms.models import User
from cmms.schemas import LoginRequest, RefreshTokenRequest, RegisterRequest, Token, UserInfo
from cmms.services.auth import login_user, refresh_tokens, register_user, revoke_refresh_token
from cmms.services.dependency import get_current_user
from cmms.utils.rate_limiter import limiter, RateLimits

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
"/register",
response_model=Token,
status_code=status.HTTP_201_CREATED,
summary="Register",
description="Create a company with its first admin user and issue access and refresh tokens."
)
@limiter.limit(RateLimits.REGISTER)
async def register(
request: Request,
data: RegisterRequest,
db: Session = Depends(get_db)
):
    """
    Handle registration request.

    Raises:
        HTTPException 400: Password does not meet complexity rules
        HTTPException 409: Email already registered
        HTTPException 500: Unexpected error during registration
    """
    try:
        return register_user(db, data)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Registration failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )


@router.post(
"/login",
response_model=Token,
summary="User login",
description="Authenticate user and return access and refresh tokens."
)
@limiter.limit(RateLimits.LOGIN)
async def login(
request: Request,
data: LoginRequest,
db: Session = Depends(get_db)
):
    """
    Handle user login request.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account disabled
        HTTPException 500: Unexpected error during login
    """
    try:
        return login_user(db, data)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )


@router.post("/refresh", response_model=Token)
@limiter.limit(RateLimits.REFRESH)
async def refresh(
request: Request,
data: RefreshTokenRequest,
db: Session = Depends(get_db)
):
    """Exchange a refresh token for a new token pair. The presented token is revoked."""
    return refresh_tokens(db, data.refresh_token)


@router.post("/logout")
async def logout(data: RefreshTokenRequest, db: Session = Depends(get_db)):
    revoke_refresh_token(db, data.refresh_token)
    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=UserInfo)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user
