"""Authentication router: registration, login, and the current user's account."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status

from src.domain.create_models import LoginRequest, RegisterRequest
from src.domain.update_models import PasswordUpdate, UserDetailsUpdate
from src.domain.user import User
from src.interface.dependencies import get_current_user
from src.interface.presenters import envelope, present_user
from src.services import user_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> dict[str, Any]:
    user_payload = present_user(user)
    user_payload.pop("createdAt")
    return envelope(token=user_service.issue_token(user), user=user_payload)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest) -> dict[str, Any]:
    user = await user_service.register(request=request)
    return _token_response(user)


@router.post("/login")
async def login(request: LoginRequest) -> dict[str, Any]:
    user = await user_service.authenticate(email=request.email, password=request.password)
    return _token_response(user)


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return envelope(data=present_user(current_user))


@router.put("/updatedetails")
async def update_details(
    update: UserDetailsUpdate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    user = await user_service.update_details(user_id=current_user.id, update=update)
    return envelope(data=present_user(user))


@router.put("/updatepassword")
async def update_password(
    update: PasswordUpdate,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """Change the password and hand out a fresh token."""
    user = await user_service.update_password(
        user_id=current_user.id,
        current_password=update.current_password,
        new_password=update.new_password,
    )
    return _token_response(user)


@router.get("/users")
async def list_users(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    users = await user_service.list_users(actor=current_user)
    return envelope(data=[present_user(user) for user in users], count=len(users))
