from fastapi import APIRouter, Depends

from app.dependencies import get_auth_service
from app.schemas import LoginRequest, TokenResponse, UserCreate
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", status_code=201, response_model=TokenResponse)
async def register(data: UserCreate, service: AuthService = Depends(get_auth_service)):
    return await service.register(data.email, data.password)

@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return await service.login(data.email, data.password)
