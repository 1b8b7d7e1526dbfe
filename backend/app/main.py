"""
FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.dependencies import get_grant_store
from app.integrations.sql_grant_store import SqlGrantStore
from app.routes import auth, email, grants, health
from app.utils.errors import AppError, InvalidMessage
from app.utils.logger import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = app.dependency_overrides.get(get_grant_store, get_grant_store)()
    if isinstance(store, SqlGrantStore):
        await store.init_models()
    logger.info("Grant store ready")
    yield
    await store.close()


# Create FastAPI app
app = FastAPI(
    title="Nylas Grant Mailer",
    description="Send email on behalf of users through delegated Nylas grants",
    version=health.VERSION,
    lifespan=lifespan,
)

# Get settings
settings = get_settings()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies share the INVALID_MESSAGE shape instead of FastAPI's 422
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or None
    error = InvalidMessage(f"Invalid request: {first.get('msg', 'malformed body')}", field)
    logger.warning(f"{request.method} {request.url.path} rejected: {error.message}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Dict details (e.g. {error, authUrl}) are returned as the body itself
    content = exc.detail if isinstance(exc.detail, dict) else {"detail": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, tags=["Authorization"])
app.include_router(email.router, tags=["Email"])
app.include_router(grants.router, prefix="/api", tags=["Grants"])
