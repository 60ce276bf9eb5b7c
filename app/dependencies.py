import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.database import get_db
from app.models.admin_user import AdminUser
from app.repos.admin_user_repo import get_by_id

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_current_admin(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AdminUser:
    """Resolve the bearer token to an active admin, or reject the request (401/403)."""
    if credentials is None:
        logger.info("Auth failed: missing bearer credentials")
        raise _unauthorized("Not authenticated")

    subject = decode_access_token(credentials.credentials)
    if not subject or not str(subject).isdigit():
        logger.info("Auth failed: invalid or expired token")
        raise _unauthorized("Invalid or expired token")

    admin = get_by_id(db, int(subject))
    if admin is None:
        logger.info("Auth failed: admin %s from token not found", subject)
        raise _unauthorized("Admin not found")
    if not admin.is_active:
        logger.info("Auth failed: admin %s is disabled", subject)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin account is disabled")
    return admin
