"""
Authentication controller
"""

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field
from datetime import timedelta
from utils.auth import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    authenticate_user,
    create_access_token,
    get_current_user,
    verify_token,
)
from utils.roles import Role

router = APIRouter()


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    expires_in: int
    user: dict


class RefreshTokenRequest(BaseModel):
    token: str


def _issue_token(email: str, role: str) -> str:
    return create_access_token(
        data={"sub": email, "role": Role.parse(role).name},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


@router.post("/login", response_model=LoginResponse)
async def login(login_data: LoginRequest):
    """
    Authenticate a member and return a bearer token carrying their role
    """
    user = authenticate_user(login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return LoginResponse(
        access_token=_issue_token(user["email"], user["role"]),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user={
            "user_id": user["user_id"],
            "email": user["email"],
            "name": user["name"],
            "role": Role.parse(user["role"]).name,
        },
    )


@router.post("/refresh")
async def refresh_token(refresh_data: RefreshTokenRequest):
    payload = verify_token(refresh_data.token)
    return {
        "access_token": _issue_token(payload["sub"], payload.get("role")),
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


@router.get("/me")
async def get_current_user_info(current_user: dict = Depends(get_current_user)):
    return current_user
