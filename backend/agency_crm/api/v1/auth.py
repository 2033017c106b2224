"""
Authentication API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session
import logging

from agency_crm.core.database import get_db
from agency_crm.core.security import create_user_token, get_current_active_user
from agency_crm.core.config import settings
from agency_crm.schemas import (
    LoginRequest, RegisterRequest, Token, UserResponse, MessageResponse,
    UpdateDetailsRequest, UpdatePasswordRequest
)
from agency_crm.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])

logger = logging.getLogger(__name__)


def set_token_cookie(response: Response, access_token: str):
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=settings.SESSION_COOKIE_HTTPONLY,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite=settings.SESSION_COOKIE_SAMESITE,
        secure=settings.SESSION_COOKIE_SECURE or settings.is_production
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    register_data: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Register a new user"""
    user_service = UserService(db)
    try:
        user = user_service.create(register_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"User {user.id} registered with role {user.role}")
    access_token = create_user_token(user)
    set_token_cookie(response, access_token)
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db)
):
    """Login and get access token"""
    user = UserService(db).authenticate(login_data.email, login_data.password)

    if not user:
        logger.warning(f"Failed login attempt for {login_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled"
        )

    access_token = create_user_token(user)
    set_token_cookie(response, access_token)
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_user = Depends(get_current_active_user)
):
    """Logout and clear token"""
    response.delete_cookie(key="access_token")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user = Depends(get_current_active_user)
):
    """Get current user info"""
    return current_user


@router.put("/update-details", response_model=UserResponse)
async def update_details(
    details: UpdateDetailsRequest,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Update the current user's name and email"""
    try:
        return UserService(db).update(current_user.id, details)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/update-password", response_model=Token)
async def update_password(
    password_data: UpdatePasswordRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_user = Depends(get_current_active_user)
):
    """Change the current user's password and issue a fresh token"""
    try:
        user = UserService(db).change_password(
            current_user, password_data.current_password, password_data.new_password
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    access_token = create_user_token(user)
    set_token_cookie(response, access_token)
    return {"access_token": access_token, "token_type": "bearer"}
