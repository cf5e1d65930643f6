from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheManager, cache
from app.config import settings
from app.database import get_db
from app.exceptions import UnauthorizedError
from app.schemas import ArticleQuery, AuthenticatedUser
from app.security import TokenIssuer, token_issuer
from app.services.article_service import ArticleService
from app.services.auth_service import AuthService
from app.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


class ArticleQueryParams:
    """
    Reusable FastAPI dependency that parses the article listing query.

    Usage in a router::

        @router.get("/article")
        async def list_articles(params: ArticleQueryParams = Depends()):
            ...

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    limit:
        Number of items per page (1 to ``settings.MAX_PAGE_SIZE``).
    author_id:
        Only return articles by this user.
    start_date / end_date:
        Inclusive bounds on ``publishedAt``.  Kept as raw strings; the
        service validates them and reports which one is malformed.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, le=settings.MAX_PAGE, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Number of items returned per page.",
        ),
        author_id: str | None = Query(None, alias="authorId", description="Filter by author id."),
        start_date: str | None = Query(None, alias="startDate", description="Earliest publish date (ISO-8601)."),
        end_date: str | None = Query(None, alias="endDate", description="Latest publish date (ISO-8601)."),
    ) -> None:
        self.page = page
        self.limit = limit
        self.author_id = author_id
        self.start_date = start_date
        self.end_date = end_date

    def to_query(self) -> ArticleQuery:
        return ArticleQuery(
            page=self.page,
            limit=self.limit,
            author_id=self.author_id,
            start_date=self.start_date,
            end_date=self.end_date,
        )


# ---------------------------------------------------------------------------
# Collaborators (process-wide) and services (per request)
# ---------------------------------------------------------------------------

def get_cache() -> CacheManager:
    return cache


def get_token_issuer() -> TokenIssuer:
    return token_issuer


def get_article_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
) -> ArticleService:
    return ArticleService(db, cache)


def get_user_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
) -> UserService:
    return UserService(db, cache)


def get_auth_service(
    users: UserService = Depends(get_user_service),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(users, tokens)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
    users: UserService = Depends(get_user_service),
) -> AuthenticatedUser:
    """
    Resolve the caller from an ``Authorization: Bearer <token>`` header.

    The token must verify and its subject must still exist.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError()

    payload = tokens.verify(credentials.credentials)
    if not await users.exists(payload["sub"]):
        raise UnauthorizedError("User not found")
    return AuthenticatedUser(id=payload["sub"], email=payload.get("email", ""))
