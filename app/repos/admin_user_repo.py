from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.admin_user import AdminUser
from app.core.security import hash_password


def get_by_username(db: Session, username: str) -> AdminUser | None:
    return db.query(AdminUser).filter(func.lower(AdminUser.username) == username.strip().lower()).first()


def get_by_id(db: Session, admin_id: int) -> AdminUser | None:
    return db.query(AdminUser).filter(AdminUser.id == admin_id).first()


def create(db: Session, username: str, password: str) -> AdminUser:
    admin = AdminUser(
        username=username.strip(),
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def set_password(db: Session, admin_id: int, password: str) -> AdminUser | None:
    admin = get_by_id(db, admin_id)
    if not admin:
        return None
    admin.password_hash = hash_password(password)
    admin.is_active = True
    db.commit()
    db.refresh(admin)
    return admin


def record_login(db: Session, admin: AdminUser) -> None:
    admin.last_login_at = datetime.now(timezone.utc)
    db.commit()
