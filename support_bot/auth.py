"""
Authentication Module for Support Bot
=====================================

Bearer-token authentication for all /api endpoints.

Authentication Methods:
-----------------------
1. **Password login**: /api/login checks the password against a passlib hash
   and returns a signed JWT (python-jose, HS256) whose "sub" claim is the user
   id and whose "role" claim is "user" or "admin".
2. **Bearer tokens**: every protected route depends on get_current_user(),
   which verifies the token and loads the user from the database.
3. **Admin routes**: additionally depend on require_admin(), which rejects
   non-admin users with 403.

Configuration:
--------------
Environment variables (see config.py):
- JWT_SECRET_KEY: Signing key (must be changed in production)
- ACCESS_TOKEN_EXPIRE_MINUTES: Token lifetime (default: 60)

Usage:
------
    from support_bot.auth import get_current_user, require_admin

    @router.get("/admin/cases")
    def list_cases(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
        ...
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import config
from .db import get_db
from .models import User


# =============================================================================
# Password Hashing
# =============================================================================

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


# =============================================================================
# Tokens
# =============================================================================

security = HTTPBearer(auto_error=False)


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = config.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": str(user.id), "role": user.role, "exp": expire}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        HTTPException (401): missing subject, bad signature or expired token
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    if not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return payload


# =============================================================================
# Dependencies
# =============================================================================

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized, token missing",
        )
    payload = decode_access_token(credentials.credentials)

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
