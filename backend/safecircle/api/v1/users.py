"""Account routes"""

from fastapi import APIRouter, Depends

from safecircle.schemas.user import UserResponse
from safecircle.api.deps import get_current_user
from safecircle.models.user import User

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_my_profile(current_user: User = Depends(get_current_user)):
    """Profile of the account behind the bearer token"""
    return UserResponse.model_validate(current_user)
