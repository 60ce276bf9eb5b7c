"""
Create an admin account, or reset the password of an existing one.
Usage: python -m app.scripts.create_admin <username> <password>
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.database import SessionLocal, ensure_tables_exist
from app.repos.admin_user_repo import create, get_by_username, set_password


def main():
    if len(sys.argv) < 3:
        print("Usage: python -m app.scripts.create_admin <username> <password>")
        sys.exit(1)
    username = sys.argv[1].strip()
    password = sys.argv[2]
    if not username or not password:
        print("Username and password must not be empty.")
        sys.exit(1)
    ensure_tables_exist()
    db = SessionLocal()
    try:
        admin = get_by_username(db, username)
        if admin:
            set_password(db, admin.id, password)
            print(f"Password reset for admin {admin.username}.")
        else:
            admin = create(db, username, password)
            print(f"Created admin {admin.username} (id={admin.id}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
