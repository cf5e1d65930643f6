from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_user_service
from app.exceptions import ForbiddenError
from app.schemas import AuthenticatedUser, MessageResponse, UserCreate, UserDetail, UserResponse, UserUpdate
from app.services.user_service import UserService

router = APIRouter(prefix="/user", tags=["users"])

@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, service: UserService = Depends(get_user_service)):
    return await service.create(data.email, data.password)

@router.get("", response_model=list[UserDetail])
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.get_users()

@router.get("/{user_id}", response_model=UserDetail)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return await service.get_user(user_id)

@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    if user.id != user_id:
        raise ForbiddenError("You can only update your own profile")
    return await service.update(user_id, data)

@router.delete("", response_model=MessageResponse)
async def delete_current_user(
    user: AuthenticatedUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    await service.remove(user.id)
    return {"message": "User deleted successfully"}
