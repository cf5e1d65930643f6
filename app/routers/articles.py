from fastapi import APIRouter, Depends

from app.dependencies import ArticleQueryParams, get_article_service, get_current_user
from app.schemas import (
    ArticleCreate,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdate,
    AuthenticatedUser,
    MessageResponse,
)
from app.services.article_service import ArticleService

router = APIRouter(prefix="/article", tags=["articles"])

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.create(data, user.id)

@router.get("", response_model=ArticleListResponse)
async def list_articles(
    params: ArticleQueryParams = Depends(),
    service: ArticleService = Depends(get_article_service),
):
    return await service.list(params.to_query())

@router.get("/{article_id}", response_model=ArticleResponse)
async def read_article(article_id: str, service: ArticleService = Depends(get_article_service)):
    return await service.read(article_id)

@router.patch("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: str,
    data: ArticleUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    return await service.update(article_id, data, user.id)

@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ArticleService = Depends(get_article_service),
):
    await service.delete(article_id, user.id)
    return {"message": "Article deleted successfully"}
