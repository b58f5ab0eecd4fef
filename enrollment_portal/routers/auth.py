from fastapi import APIRouter, Depends

from ..core.security import get_current_user
from ..schemas.user_schemas import User

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.get("/me", response_model=User)
async def current_user(user: User = Depends(get_current_user)):
    """The verified caller; first-time callers are registered as students"""
    return user
