import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hardware_store.config import TOKEN_AUDIENCE, TOKEN_ISSUER, Settings
from hardware_store.core.dependencies import get_optional_user
from hardware_store.core.errors import AppError, AuthenticationError
from hardware_store.core.identity import IdentityResolver, ResolvedIdentity
from hardware_store.core.security import TokenService
from hardware_store.database import Database
from hardware_store.routes.auth import router as auth_router
from hardware_store.routes.categories import router as categories_router
from hardware_store.routes.images import router as images_router
from hardware_store.routes.products import router as products_router
from hardware_store.routes.sub_categories import router as sub_categories_router
from hardware_store.schemas.common import ApiResponse, failure, ok
from hardware_store.schemas.user import HealthStatus
from hardware_store.services.storage_service import ImageStorage, build_image_storage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"
_UNSET = object()


def _field_path(loc) -> str:
    # Drop the leading "body"/"query"/"path" segment
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        if exc.status_code >= 500:
            logger.error(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(exc.error, exc.message, exc.details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [f"{_field_path(err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure("ValidationError", "Invalid input data", details),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        settings: Settings = request.app.state.settings
        details = None if settings.is_production else [str(exc)]
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure("InternalServerError", "An internal server error occurred", details),
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    image_storage=_UNSET,
) -> FastAPI:
    """
    Build the API application.

    Nothing connects at import time: the database, token service and image
    store are created when the application starts and released when it stops.
    Tests pass their own ``database`` and ``image_storage``.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings.database_url)
        db.create_all()
        tokens = TokenService(settings.jwt_secret, settings.jwt_expires_in, TOKEN_ISSUER, TOKEN_AUDIENCE)
        storage: Optional[ImageStorage] = (
            build_image_storage(settings) if image_storage is _UNSET else image_storage
        )

        app.state.database = db
        app.state.token_service = tokens
        app.state.identity_resolver = IdentityResolver(tokens)
        app.state.image_storage = storage
        logger.info(f"Hardware store API started ({settings.environment})")
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(title="Hardware Store API", version=API_VERSION, lifespan=lifespan)
    app.state.settings = settings

    origins = [o.strip() for o in settings.cors_origin.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(categories_router, prefix="/api/categories", tags=["categories"])
    app.include_router(sub_categories_router, prefix="/api/sub-categories", tags=["sub-categories"])
    app.include_router(products_router, prefix="/api/products", tags=["products"])
    app.include_router(images_router, prefix="/api/images", tags=["images"])

    @app.get("/health", response_model=ApiResponse[HealthStatus])
    def health(current_user: Optional[ResolvedIdentity] = Depends(get_optional_user)):
        user = None
        if current_user:
            user = {"id": current_user.id, "username": current_user.username, "role": current_user.role.value}
        return ok(HealthStatus(
            status="ok",
            version=API_VERSION,
            timestamp=datetime.now(timezone.utc),
            user=user,
        ))

    return app


app = create_app()
