"""User service: registration, credentials, and profile management."""

import logging
from typing import Any

from src.core import db_client
from src.core.errors import AuthenticationError, ConflictError, NotFoundError
from src.core.logging import span
from src.core.security import create_access_token, decode_access_token, hash_password, verify_password
from src.domain.create_models import RegisterRequest
from src.domain.update_models import UserDetailsUpdate
from src.domain.user import User
from src.services import authorization
from src.services.authorization import Operation


logger = logging.getLogger(__name__)


def _to_user(record: dict[str, Any]) -> User:
    return User.model_validate(record)


async def _find_user_record_by_email(email: str) -> dict[str, Any] | None:
    return await db_client.get_first_record(
        collection="users",
        where={"email": email},
    )


async def find_user(*, user_id: str) -> User | None:
    """Get a user by ID, or None if it does not exist."""
    try:
        record = await db_client.get_record(collection="users", record_id=user_id)
    except db_client.RecordNotFoundError:
        return None
    return _to_user(record)


async def get_user(*, user_id: str) -> User:
    """Get a user by ID.

    Raises:
        NotFoundError: If the user does not exist
    """
    user = await find_user(user_id=user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register(*, request: RegisterRequest) -> User:
    """Create a new user with a hashed password.

    Raises:
        ConflictError: If the email is already registered
    """
    with span("user_service.register"):
        # Guard: Check if user already exists
        if await _find_user_record_by_email(request.email):
            logger.warning("Registration rejected, email already registered", extra={"email": request.email})
            raise ConflictError("User already exists with this email")

        try:
            record = await db_client.create_record(
                collection="users",
                data={
                    "name": request.name,
                    "email": request.email,
                    "password_hash": hash_password(request.password),
                    "role": request.role.value,
                },
            )
        except db_client.UniqueConstraintError as e:
            # Lost a race with a concurrent registration
            raise ConflictError("Email already exists") from e

        logger.info("Registered user", extra={"user_id": record["id"], "role": record["role"]})
        return _to_user(record)


async def authenticate(*, email: str, password: str) -> User:
    """Check credentials and return the matching user.

    Raises:
        AuthenticationError: If the email is unknown or the password does not match
    """
    with span("user_service.authenticate"):
        record = await _find_user_record_by_email(email)
        if record is None or not verify_password(password, record["password_hash"]):
            logger.info("Login failed", extra={"email": email})
            raise AuthenticationError("Invalid credentials")

        logger.info("Login succeeded", extra={"user_id": record["id"]})
        return _to_user(record)


def issue_token(user: User) -> str:
    """Create a bearer token for the user."""
    return create_access_token(user_id=user.id, role=user.role.value)


async def get_user_for_token(token: str) -> User:
    """Resolve a bearer token to its (still existing) user.

    Raises:
        AuthenticationError: If the token is invalid or its user no longer exists
    """
    payload = decode_access_token(token)
    user = await find_user(user_id=str(payload["id"]))
    if user is None:
        raise AuthenticationError("Not authorized to access this route")
    return user


async def update_details(*, user_id: str, update: UserDetailsUpdate) -> User:
    """Update the user's name and/or email.

    Raises:
        ConflictError: If the new email belongs to another user
    """
    with span("user_service.update_details"):
        user = await get_user(user_id=user_id)

        data: dict[str, Any] = {}
        if update.name is not None:
            data["name"] = update.name
        if update.email is not None and update.email != user.email:
            existing = await _find_user_record_by_email(update.email)
            if existing and existing["id"] != user_id:
                raise ConflictError("Email already exists")
            data["email"] = update.email

        if not data:
            return user

        try:
            record = await db_client.update_record(collection="users", record_id=user_id, data=data)
        except db_client.UniqueConstraintError as e:
            raise ConflictError("Email already exists") from e

        logger.info("Updated user details", extra={"user_id": user_id, "fields": sorted(data)})
        return _to_user(record)


async def update_password(*, user_id: str, current_password: str, new_password: str) -> User:
    """Change the user's password after checking the current one.

    Raises:
        AuthenticationError: If the current password is wrong
    """
    with span("user_service.update_password"):
        try:
            record = await db_client.get_record(collection="users", record_id=user_id)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError("User not found") from e

        if not verify_password(current_password, record["password_hash"]):
            raise AuthenticationError("Password is incorrect")

        record = await db_client.update_record(
            collection="users",
            record_id=user_id,
            data={"password_hash": hash_password(new_password)},
        )
        logger.info("Updated user password", extra={"user_id": user_id})
        return _to_user(record)


async def list_users(*, actor: User) -> list[User]:
    """List all users (admin only)."""
    with span("user_service.list_users"):
        authorization.authorize(actor, Operation.LIST_USERS)
        records = await db_client.list_records(collection="users", per_page=None, sort="name")
        return [_to_user(record) for record in records]
