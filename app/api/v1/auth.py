"""Identity endpoints. Sign-in itself happens at the external identity provider."""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_current_user
from app.chat.schemas import UserResponse
from app.models.user import User


router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/user", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Profile of the signed-in user, created on first sight from the token claims."""
    return current_user
