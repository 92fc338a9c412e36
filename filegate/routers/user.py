from fastapi import APIRouter, Depends

from filegate.dependencies import get_current_user
from filegate.models.user_model import User
from filegate.schemas.user_schema import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse,
            summary="Displaying user information",
            description="""
                            Displays the ID, name and email of the logged-in user
                        """,
            responses={
                401: {"description": "Not authenticated"}
            })
def read_current_user(user: User = Depends(get_current_user)):
    return user
