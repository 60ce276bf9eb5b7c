import hashlib
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from app.config import settings

TOKEN_SCOPE = "admin"


def _prehash(password: str) -> bytes:
    """bcrypt only reads 72 bytes, so long passphrases are digested first."""
    return hashlib.sha256(password.encode("utf-8")).digest()


def hash_password(password: str) -> str:
    digest = bcrypt.hashpw(_prehash(password), bcrypt.gensalt())
    return digest.decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(plain), hashed.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        # Malformed hash stored in the DB
        return False


def create_access_token(admin_id: str | int) -> str:
    """Signed token naming the admin id, valid for ACCESS_TOKEN_EXPIRE_MINUTES."""
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(admin_id),
        "scope": TOKEN_SCOPE,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> str | None:
    """Return the admin id from a valid admin token, else None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if claims.get("scope") != TOKEN_SCOPE:
        return None
    return claims.get("sub")
