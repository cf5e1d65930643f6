"""
User service: CRUD operations for the User aggregate.

Users themselves are not cached.  Their articles are, and each cached
article embeds the author's public view, so any user write that can
change or remove that view drops the user's article keys and every
listing page.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.cache import CacheManager, article_key
from app.exceptions import ConflictError, NotFoundError
from app.models import Article, User
from app.schemas import UserUpdate
from app.security import hash_password
from app.services.article_service import as_utc

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Public view of a user; never includes the password hash."""
    return {
        "id": user.id,
        "email": user.email,
        "created_at": as_utc(user.created_at).isoformat() if user.created_at else None,
    }


def _article_summary_to_dict(article: Article) -> dict:
    """
    Serialise an Article for embedding inside a user detail response.

    The author is omitted to avoid circular nesting.
    """
    return {
        "id": article.id,
        "title": article.title,
        "description": article.description,
        "published_at": as_utc(article.published_at).isoformat() if article.published_at else None,
        "author_id": article.author_id,
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class UserService:
    def __init__(self, db: AsyncSession, cache: CacheManager) -> None:
        self.db = db
        self.cache = cache

    async def create(self, email: str, password: str) -> dict:
        """
        Create a user with a bcrypt-hashed password.

        Raises ConflictError when the email is already registered.  The
        unique constraint backs up the pre-check for concurrent signups.
        """
        if await self.find_by_email(email) is not None:
            raise ConflictError("A user with this email already exists")

        user = User(email=email, password=hash_password(password))
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("A user with this email already exists") from exc
        await self.db.refresh(user, ["created_at"])
        await self.db.commit()

        logger.info("User created id=%s", user.id)
        return user_to_dict(user)

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def exists(self, user_id: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def get_users(self) -> list[dict]:
        """Return all users newest first, each with a summary of their articles."""
        q = (
            select(User)
            .options(selectinload(User.articles))
            .order_by(User.created_at.desc())
        )
        result = await self.db.execute(q)
        users = []
        for user in result.scalars().all():
            data = user_to_dict(user)
            data["articles"] = [_article_summary_to_dict(a) for a in user.articles]
            users.append(data)
        return users

    async def get_user(self, user_id: str) -> dict:
        """
        Return one user with a summary of their articles.

        Raises NotFoundError when the user does not exist.
        """
        q = (
            select(User)
            .where(User.id == user_id)
            .options(selectinload(User.articles))
        )
        result = await self.db.execute(q)
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")

        data = user_to_dict(user)
        data["articles"] = [_article_summary_to_dict(a) for a in user.articles]
        return data

    async def update(self, user_id: str, data: UserUpdate) -> dict:
        """Apply a partial update; a new password is re-hashed."""
        user = await self._get_or_404(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        new_email = changes.get("email")
        if new_email and new_email != user.email:
            if await self.find_by_email(new_email) is not None:
                raise ConflictError("A user with this email already exists")
            user.email = new_email
        if "password" in changes:
            user.password = hash_password(changes["password"])

        article_ids = await self._article_ids(user_id)
        await self.db.flush()
        await self.db.commit()

        await self._invalidate_articles(article_ids)
        logger.info("User updated id=%s fields=%s", user_id, sorted(changes))
        return user_to_dict(user)

    async def remove(self, user_id: str) -> None:
        """Delete a user together with their articles."""
        await self._get_or_404(user_id)
        article_ids = await self._article_ids(user_id)

        await self.db.execute(delete(Article).where(Article.author_id == user_id))
        await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.commit()

        await self._invalidate_articles(article_ids)
        logger.info("User removed id=%s articles=%d", user_id, len(article_ids))

    # ------------------------------------------------------------------

    async def _get_or_404(self, user_id: str) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    async def _article_ids(self, user_id: str) -> list[str]:
        result = await self.db.execute(select(Article.id).where(Article.author_id == user_id))
        return list(result.scalars().all())

    async def _invalidate_articles(self, article_ids: list[str]) -> None:
        for article_id in article_ids:
            await self.cache.delete(article_key(article_id))
        await self.cache.invalidate_article()
