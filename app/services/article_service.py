"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Reads go through the cache-aside pattern: ``article:{id}`` for the
  detail view and ``article:list:{query}`` for listing pages.  A cache hit
  is returned as-is without touching the database.
- Writes commit first and then invalidate.  Every write drops the detail
  key of the article it touched and the whole ``article:list:*`` prefix;
  listing pages are never patched in place.
- Nested authors are serialised without the password hash before
  anything is cached or returned.
- Updates are conditional on ``Article.version`` and bump it, so two
  writers racing on the same article cannot silently lose an update.
"""
import json
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.cache import ARTICLE_LIST_PREFIX, CacheManager, article_key
from app.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.models import Article, User
from app.schemas import ArticleCreate, ArticleQuery, ArticleUpdate

logger = logging.getLogger(__name__)

# Detail entries live for 30 days unless a write invalidates them first.
DETAIL_TTL = 30 * 24 * 60 * 60


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def _parse_date(value: str, field: str) -> datetime:
    try:
        # Offsets near year 1 or 9999 parse but overflow once shifted to UTC.
        return as_utc(datetime.fromisoformat(value))
    except (ValueError, OverflowError) as exc:
        raise BadRequestError(f"Invalid date format for {field}") from exc


def list_cache_key(query: ArticleQuery) -> str:
    """
    Build the listing cache key from a canonical form of *query*: keys
    sorted and unset filters dropped, so logically identical queries
    always share one entry.
    """
    canonical = json.dumps(
        query.model_dump(exclude_none=True), sort_keys=True, separators=(",", ":")
    )
    return f"{ARTICLE_LIST_PREFIX}{canonical}"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def serialize_author(author: User | None) -> dict | None:
    """Public view of a user; the password hash is never included."""
    if author is None:
        return None
    return {
        "id": author.id,
        "email": author.email,
        "created_at": _isoformat(author.created_at),
    }


def article_to_dict(article: Article, include_author: bool = True) -> dict:
    """Serialise an Article ORM instance to a plain, cacheable dict."""
    return {
        "id": article.id,
        "title": article.title,
        "description": article.description,
        "published_at": _isoformat(article.published_at),
        "author_id": article.author_id,
        "version": article.version,
        "author": serialize_author(article.author) if include_author else None,
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ArticleService:
    """Article reads and writes against the database and the cache."""

    def __init__(self, db: AsyncSession, cache: CacheManager) -> None:
        self.db = db
        self.cache = cache

    async def create(self, data: ArticleCreate, caller_id: str) -> dict:
        """
        Persist a new article owned by *caller_id*.

        ``published_at`` defaults to now.  All listing pages are invalidated
        since a new article can shift any page.  The returned dict carries
        no nested author (it is not loaded on create).
        """
        published_at = as_utc(data.published_at) if data.published_at else datetime.now(timezone.utc)
        article = Article(
            title=data.title,
            description=data.description,
            published_at=published_at,
            author_id=caller_id,
            version=1,
        )
        self.db.add(article)
        await self.db.flush()
        await self.db.commit()

        await self.cache.invalidate_article()
        logger.info("Article created id=%s author=%s", article.id, caller_id)
        return article_to_dict(article, include_author=False)

    async def read(self, article_id: str) -> dict:
        """
        Return the article with its public author view.

        Raises NotFoundError when the article does not exist.
        """
        cache_key = article_key(article_id)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        q = (
            select(Article)
            .where(Article.id == article_id)
            .options(joinedload(Article.author))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(q)
        article = result.unique().scalar_one_or_none()
        if article is None:
            raise NotFoundError("Article not found")

        data = article_to_dict(article)
        await self.cache.set(cache_key, data, ttl=DETAIL_TTL)
        return data

    async def update(self, article_id: str, patch: ArticleUpdate, caller_id: str) -> dict:
        """
        Partially update an article owned by *caller_id*.

        Existence is checked before ownership, so an unknown id is a
        NotFoundError for every caller.  Only fields present in *patch* are
        written.  The write only applies while the stored version equals
        ``patch.version`` (or the version just read); otherwise ConflictError.
        """
        article = await self.read(article_id)
        self._ensure_author(article, caller_id, "update")

        values = patch.model_dump(exclude_unset=True, exclude_none=True, exclude={"version"})
        if not values:
            if patch.version is not None and patch.version != article["version"]:
                raise ConflictError("Article was modified by another request; reload and retry")
            return article
        if "published_at" in values:
            values["published_at"] = as_utc(values["published_at"])

        expected_version = patch.version if patch.version is not None else article["version"]
        stmt = (
            update(Article)
            .where(Article.id == article_id, Article.version == expected_version)
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            # The cached copy (if any) is behind the database.
            await self.cache.delete(article_key(article_id))
            raise ConflictError("Article was modified by another request; reload and retry")
        await self.db.commit()

        await self.cache.invalidate_article(article_id)
        logger.info("Article updated id=%s fields=%s", article_id, sorted(values))
        return await self.read(article_id)

    async def delete(self, article_id: str, caller_id: str) -> None:
        """Permanently delete an article owned by *caller_id*."""
        article = await self.read(article_id)
        self._ensure_author(article, caller_id, "delete")

        await self.db.execute(delete(Article).where(Article.id == article_id))
        await self.db.commit()

        await self.cache.invalidate_article(article_id)
        logger.info("Article deleted id=%s", article_id)

    async def list(self, query: ArticleQuery) -> dict:
        """
        Return one page of articles, newest ``published_at`` first.

        Two SQL statements are issued on a cache miss: a COUNT over every
        matching row and the page itself with the author joined.  Date
        filters are validated before either runs.
        """
        cache_key = list_cache_key(query)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached

        start = _parse_date(query.start_date, "startDate") if query.start_date else None
        end = _parse_date(query.end_date, "endDate") if query.end_date else None

        conditions = []
        if query.author_id:
            conditions.append(Article.author_id == query.author_id)
        if start is not None and end is not None:
            conditions.append(Article.published_at.between(start, end))
        elif start is not None:
            conditions.append(Article.published_at >= start)
        elif end is not None:
            conditions.append(Article.published_at <= end)

        count_q = select(func.count()).select_from(Article)
        rows_q = (
            select(Article)
            .options(joinedload(Article.author))
            .order_by(Article.published_at.desc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        for condition in conditions:
            count_q = count_q.where(condition)
            rows_q = rows_q.where(condition)

        total: int = (await self.db.execute(count_q)).scalar_one()
        result = await self.db.execute(rows_q)
        articles = result.unique().scalars().all()

        response = {
            "articles": [article_to_dict(a) for a in articles],
            "total": total,
            "page": query.page,
            "limit": query.limit,
        }
        await self.cache.set(cache_key, response)
        return response

    @staticmethod
    def _ensure_author(article: dict, caller_id: str, action: str) -> None:
        if article["author_id"] != caller_id:
            raise ForbiddenError(f"You can only {action} your own articles")
