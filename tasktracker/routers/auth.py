from fastapi import APIRouter, Depends, status

from tasktracker.auth.gate import get_current_user
from tasktracker.dependencies import get_auth_service
from tasktracker.models import (
    ApiResponse,
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    User,
    UserRead,
)
from tasktracker.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest, service: AuthService = Depends(get_auth_service)
):
    """Create a new account"""
    user = await service.create_user(user_data)
    return ApiResponse(
        success=True,
        message="User registered successfully",
        data=UserRead.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange credentials for a one hour bearer token"""
    user, token = await service.login(credentials.email, credentials.password)
    return AuthResponse(
        success=True,
        message="User logged in successfully",
        user=UserRead.model_validate(user),
        token=token,
    )


@router.get("/me", response_model=ApiResponse)
async def me(user: User = Depends(get_current_user)):
    return ApiResponse(
        success=True,
        message="User retrieved successfully",
        data=UserRead.model_validate(user),
    )
