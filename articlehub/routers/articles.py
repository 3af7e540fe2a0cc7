import uuid

from fastapi import APIRouter, Depends, Response

from articlehub.dependencies import (
    ArticleSearchParams,
    check_article_access,
    get_article_store,
    optional_user_id,
    require_user_id,
)
from articlehub.exceptions import NotFoundError
from articlehub.schemas import ArticleCreate, ArticleResponse, ArticleUpdate
from articlehub.services.article_service import ArticleStore

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreate,
    user_id: uuid.UUID = Depends(require_user_id),
    articles: ArticleStore = Depends(get_article_store),
):
    return await articles.create(user_id, data)


@router.get("/search", response_model=list[ArticleResponse])
async def search_articles(
    params: ArticleSearchParams = Depends(),
    user_id: uuid.UUID | None = Depends(optional_user_id),
    articles: ArticleStore = Depends(get_article_store),
):
    filters = params.filters.model_copy(update={"requester_id": user_id})
    return await articles.search(filters)


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article: ArticleResponse = Depends(check_article_access)):
    return article


@router.patch(
    "/{article_id}",
    response_model=ArticleResponse,
    dependencies=[Depends(require_user_id), Depends(check_article_access)],
)
async def update_article(
    article_id: uuid.UUID,
    data: ArticleUpdate,
    articles: ArticleStore = Depends(get_article_store),
):
    article = await articles.update(article_id, data)
    if article is None:
        raise NotFoundError("Article not found")
    return article


@router.delete(
    "/{article_id}",
    status_code=204,
    dependencies=[Depends(require_user_id), Depends(check_article_access)],
)
async def delete_article(
    article_id: uuid.UUID,
    articles: ArticleStore = Depends(get_article_store),
):
    await articles.delete(article_id)
    return Response(status_code=204)
