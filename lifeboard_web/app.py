"""FastAPI application factory for the Lifeboard dashboard API"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lifeboard.auth.service import CredentialService
from lifeboard.resources.store import DocumentStore
from lifeboard.suggestions.service import SuggestionService
from lifeboard.utils.config import Settings
from lifeboard.utils.exceptions import LifeboardError
from lifeboard.utils.logger import get_logger
from .auth_routes import router as auth_router
from .resource_routes import resource_routers
from .suggestion_routes import router as suggestion_router

logger = get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LifeboardError)
    async def lifeboard_error_handler(request: Request, exc: LifeboardError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": _validation_message(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


def create_app(
    settings: Optional[Settings] = None,
    suggestion_service: Optional[SuggestionService] = None,
) -> FastAPI:
    """Build the API with its services attached to ``app.state``."""
    settings = settings or Settings()

    app = FastAPI(
        title="Lifeboard",
        description="Personal dashboard API",
        version=settings.app.version,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.credentials = CredentialService(
        settings.storage.data_dir,
        min_password_length=settings.auth.min_password_length,
        session_expiry_days=settings.auth.session_expiry_days,
        bcrypt_rounds=settings.auth.bcrypt_rounds,
    )
    app.state.document_store = DocumentStore(settings.storage.data_dir)
    app.state.suggestions = suggestion_service or SuggestionService(
        api_key=settings.suggestions.api_key,
        model=settings.suggestions.model,
        timeout=settings.suggestions.timeout,
        count=settings.suggestions.count,
    )

    _install_error_handlers(app)
    app.include_router(auth_router)
    for router in resource_routers():
        app.include_router(router)
    app.include_router(suggestion_router)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok"}

    logger.info("Application created", environment=settings.app.environment, data_dir=settings.storage.data_dir)
    return app
