"""
API docs guarded by HTTP Basic auth.

Mounted instead of FastAPI's built-in ``/docs`` and ``/openapi.json``
when ``APP_ENV=production``.
"""
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.config import settings

router = APIRouter(include_in_schema=False)
basic_auth = HTTPBasic()


def require_docs_credentials(credentials: HTTPBasicCredentials = Depends(basic_auth)) -> None:
    valid_user = secrets.compare_digest(credentials.username.encode(), settings.DOCS_USERNAME.encode())
    valid_password = secrets.compare_digest(credentials.password.encode(), settings.DOCS_PASSWORD.encode())
    if not (valid_user and valid_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )


@router.get("/openapi.json", dependencies=[Depends(require_docs_credentials)])
async def openapi_schema(request: Request):
    return request.app.openapi()


@router.get("/docs", dependencies=[Depends(require_docs_credentials)])
async def swagger_ui(request: Request):
    return get_swagger_ui_html(openapi_url="/openapi.json", title=f"{request.app.title} - Docs")
