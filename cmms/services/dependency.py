from fastapi import Depends, HTTPException, Path, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import logging

from cmms.database import get_db
from cmms.models import User
from cmms.utils.security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get the current authenticated user"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise credentials_exception

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user or not user.is_active:
        raise credentials_exception

    return user


def require_company_access(
    company_id: int = Path(..., description="Company the request is scoped to"),
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Ensure the authenticated user belongs to the company named in the route.

    This check only compares tenants. Entity lookups below it still filter by
    company_id in the same query so foreign ids surface as 404, not 403.
    """
    if current_user.company_id != company_id:
        logger.warning(
            f"User {current_user.id} denied access to company {company_id}",
            extra={"action": "TENANT_GUARD"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this company"
        )
    return current_user
