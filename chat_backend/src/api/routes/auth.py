from fastapi import APIRouter, Body, Depends, status

from src.db.models import UserModel
from src.services.schemas import to_public_user
from src.services.user_service import UserService

from ..deps import get_current_user, get_user_service
from ..schemas import ERROR_RESPONSES, AuthResponse, LoginRequest, MessageResponse, ProfileUpdate, RegisterRequest, UserEnvelope, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"], responses=ERROR_RESPONSES)


@router.post("/register", summary="Register", description="Create a new user account", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest = Body(default_factory=RegisterRequest), users: UserService = Depends(get_user_service)):
    token, user = users.register(payload.username, payload.email, payload.password)
    return AuthResponse(message="User registered successfully", token=token, user=user)


@router.post("/login", summary="Login", description="Exchange email and password for an access token", response_model=AuthResponse)
def login(payload: LoginRequest = Body(default_factory=LoginRequest), users: UserService = Depends(get_user_service)):
    token, user = users.login(payload.email, payload.password)
    return AuthResponse(message="Login successful", token=token, user=user)


@router.get("/me", summary="Me", description="Get current user details", response_model=UserResponse)
def me(user: UserModel = Depends(get_current_user)):
    return UserResponse(user=to_public_user(user))


@router.put("/profile", summary="Update Profile", description="Update username, email or preferences", response_model=UserEnvelope)
def update_profile(
    payload: ProfileUpdate,
    user: UserModel = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    preferences = payload.preferences.model_dump(exclude_none=True) if payload.preferences else None
    updated = users.update_profile(user, username=payload.username, email=payload.email, preferences=preferences)
    return UserEnvelope(message="Profile updated successfully", user=updated)


@router.post("/logout", summary="Logout", description="Stateless logout; the client discards its token", response_model=MessageResponse)
def logout(user: UserModel = Depends(get_current_user)):
    return MessageResponse(message="Logged out successfully")
