import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.security import create_access_token, verify_password
from app.database import get_db
from app.dependencies import get_current_admin
from app.models.admin_user import AdminUser
from app.repos.admin_user_repo import get_by_username, record_login
from app.schemas.auth import AdminLogin, AdminResponse, Token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])


@router.post("/login", response_model=Token)
def login(data: AdminLogin, db: Session = Depends(get_db)):
    try:
        admin = get_by_username(db, data.username)
        if not admin or not verify_password(data.password, admin.password_hash):
            logger.info("Admin login failed for username=%s", data.username)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )
        if not admin.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin account is disabled",
            )
        record_login(db, admin)
        logger.info("Admin logged in: %s", admin.username)
        return Token(
            access_token=create_access_token(admin.id),
            admin=AdminResponse(id=admin.id, username=admin.username),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Admin login failed for username=%s: %s", data.username, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed") from e


@router.get("/me", response_model=AdminResponse)
def me(admin: AdminUser = Depends(get_current_admin)):
    return AdminResponse(id=admin.id, username=admin.username)
