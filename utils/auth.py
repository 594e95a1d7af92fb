"""
Authentication utilities: bearer JWTs carrying the caller's role
"""

import os
import jwt
from datetime import timedelta
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from typing import Optional, Dict

from utils.clock import utcnow
from utils.roles import Role

JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer()

# Development accounts, password "secret". Sessions come from the external
# identity provider in production.
_DEV_PASSWORD_HASH = "$2b$12$EixZaYVK1fsbw1ZfbX3OXePaWxn96p36WQoeG6Lruj3vjPGga31lW"
_DEV_ACCOUNTS = [
    # email, user id suffix, role, display name
    ("member@safetynet.dao", 1, Role.MEMBER, "Amara Okafor"),
    ("voter@safetynet.dao", 2, Role.MEMBER, "Jonas Lindqvist"),
    ("validator@safetynet.dao", 3, Role.VALIDATOR, "Priya Raman"),
    ("admin@safetynet.dao", 4, Role.ADMIN, "Sam Whitfield"),
    ("guest@safetynet.dao", 5, Role.TOUR, "Guest Visitor"),
]

mock_users = {
    email: {
        "user_id": f"7b0f8a3e-1c2d-4e5f-8a9b-{suffix:012d}",
        "email": email,
        "hashed_password": _DEV_PASSWORD_HASH,
        "role": role.name,
        "name": name,
    }
    for email, suffix, role, name in _DEV_ACCOUNTS
}


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def authenticate_user(email: str, password: str) -> Optional[Dict]:
    user = mock_users.get(email.strip().lower())
    if not user or not verify_password(password, user["hashed_password"]):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign `data` (expects at least `sub`) with an expiry claim."""
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode({**data, "exp": expire}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise _credentials_error()
    if payload.get("sub") is None:
        raise _credentials_error()
    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict:
    """
    Resolve the bearer token to the session user.

    The role always comes from the account record, never from the token, and
    is normalised to a Role name (unknown roles become TOUR).
    """
    payload = verify_token(credentials.credentials)
    user = mock_users.get(payload["sub"])
    if user is None:
        raise _credentials_error("User not found")
    return {
        "user_id": user["user_id"],
        "email": user["email"],
        "role": Role.parse(user["role"]).name,
        "name": user["name"],
    }
