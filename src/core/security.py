"""Password hashing and bearer token signing."""

import logging
from typing import Any

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import constants, settings
from src.core.errors import AuthenticationError


logger = logging.getLogger(__name__)

TOKEN_SALT = "taskflow-bearer"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    password_bytes = password.encode("utf-8")[: constants.BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    password_bytes = password.encode("utf-8")[: constants.BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(str(settings.secret_key), salt=TOKEN_SALT)


def create_access_token(*, user_id: str, role: str) -> str:
    """Sign a bearer token carrying the user's id and role."""
    return _serializer().dumps({"id": user_id, "role": role})


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its payload.

    Raises:
        AuthenticationError: If the token is tampered, expired, or malformed
    """
    try:
        payload = _serializer().loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired as err:
        raise AuthenticationError("Token expired, please log in again") from err
    except BadSignature as err:
        raise AuthenticationError("Not authorized to access this route") from err

    if not isinstance(payload, dict) or "id" not in payload:
        raise AuthenticationError("Not authorized to access this route")
    return payload
