import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from articlehub.database import get_db
from articlehub.dependencies import UserSearchParams, get_token_service, require_user_id
from articlehub.exceptions import NotFoundError
from articlehub.schemas import LoginRequest, LoginResult, UserCreate, UserResponse, UserUpdate
from articlehub.security.tokens import TokenService
from articlehub.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/login", response_model=LoginResult)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    return await user_service.login(db, tokens, data.email, data.password)


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await user_service.create_user(db, data)


@router.get(
    "/search",
    response_model=list[UserResponse],
    dependencies=[Depends(require_user_id)],
)
async def search_users(
    params: UserSearchParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.search_users(db, params.filters)


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_user_id)])
async def get_user(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.patch("/{user_id}", response_model=UserResponse, dependencies=[Depends(require_user_id)])
async def update_user(user_id: uuid.UUID, data: UserUpdate, db: AsyncSession = Depends(get_db)):
    user = await user_service.update_user(db, user_id, data)
    if user is None:
        raise NotFoundError("User not found")
    return user
