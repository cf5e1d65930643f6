import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.cache import cache
from app.config import settings
from app.exceptions import AppError
from app.middleware import RequestLogMiddleware
from app.routers import articles, auth, docs, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.CACHE_ENABLED:
        await cache.connect()
    else:
        logger.info("Cache disabled by configuration")
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Article Management API",
    description="API for managing articles with authentication",
    version="1.0.0",
    lifespan=lifespan,
    # In production the docs are served by the guarded router below.
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
    openapi_url=None if settings.is_production else "/openapi.json",
)

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(articles.router)
app.include_router(users.router)
if settings.is_production:
    app.include_router(docs.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
