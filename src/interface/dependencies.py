"""FastAPI dependencies for bearer-token authentication."""

import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.core.errors import AuthenticationError
from src.domain.user import User
from src.services import user_service


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """Resolve the bearer token on the request to its user, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized to access this route")

    return await user_service.get_user_for_token(credentials.credentials)
