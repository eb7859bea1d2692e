"""
Account endpoints. Credentials live in the configured AuthProvider.
"""

from fastapi import APIRouter, Depends, status

from railbook.core.config import get_settings
from railbook.core.exceptions import DuplicateKey
from railbook.core.logging import get_logger
from railbook.core.security import AuthProvider, get_auth_provider, get_current_username
from railbook.schemas.user import UserRegister, UserResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    provider: AuthProvider = Depends(get_auth_provider),
):
    """Register a new user account."""
    if not provider.register(user_data.username, user_data.password):
        logger.warning("registration_failed", reason="username_exists", username=user_data.username)
        raise DuplicateKey("Username already taken")
    logger.info("user_registered", username=user_data.username)
    return UserResponse(username=user_data.username)


@router.get("/me", response_model=UserResponse)
async def me(username: str = Depends(get_current_username)):
    """Who the supplied credentials belong to."""
    return UserResponse(username=username, is_admin=username == get_settings().ADMIN_USERNAME)
