from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from datetime import datetime

from app.config import settings


class CamelModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- User ---

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=72)


class UserResponse(CamelModel):
    id: str
    email: str
    created_at: datetime | None = None


class AuthorResponse(CamelModel):
    id: str
    email: str
    created_at: datetime | None = None


# --- Auth ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=72)


class TokenUser(BaseModel):
    id: str
    email: str


class TokenResponse(BaseModel):
    access_token: str
    user: TokenUser


class AuthenticatedUser(BaseModel):
    """Caller identity extracted from a verified bearer token."""
    id: str
    email: str


# --- Article ---

class ArticleCreate(CamelModel):
    title: str = Field(min_length=3, max_length=300)
    description: str = Field(min_length=10)
    published_at: datetime | None = None


class ArticleUpdate(CamelModel):
    title: str | None = Field(None, min_length=3, max_length=300)
    description: str | None = Field(None, min_length=10)
    published_at: datetime | None = None
    # When sent, the update only applies if the stored version still matches.
    version: int | None = Field(None, ge=1)


class ArticleSummary(CamelModel):
    id: str
    title: str
    description: str
    published_at: datetime
    author_id: str


class ArticleResponse(ArticleSummary):
    version: int = 1
    author: AuthorResponse | None = None


class UserDetail(UserResponse):
    articles: list[ArticleSummary] = []


class ArticleQuery(BaseModel):
    """
    Listing filters.  Dates stay strings here; the service parses them so a
    malformed value surfaces as a BadRequestError naming the field.
    """
    page: int = Field(1, ge=1, le=settings.MAX_PAGE)
    limit: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    author_id: str | None = None
    start_date: str | None = None
    end_date: str | None = None


# --- Pagination ---

class ArticleListResponse(BaseModel):
    articles: list[ArticleResponse]
    total: int
    page: int
    limit: int


class MessageResponse(BaseModel):
    message: str
