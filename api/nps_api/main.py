import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import APP_NAME, APP_VERSION, CORS_ORIGINS
from .container import Container, build_container
from .database import Base, SessionLocal, engine
from .errors import AppError, error_envelope
from .logging_config import configure_logging
from .routes import include_modular_routers

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Application error path=%s code=%s: %s", request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.code, exc.message, exc.details),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(error_envelope("VALIDATION_ERROR", "Validation failed", details)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content=error_envelope(code, message), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error path=%s", request.url.path)
        return JSONResponse(status_code=500, content=error_envelope("INTERNAL_ERROR", "Internal server error"))


def create_app(container: Container | None = None) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    owns_database = container is None
    app.state.container = container or build_container(SessionLocal)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_exception_handlers(app)
    include_modular_routers(app)

    @app.on_event("startup")
    def on_startup() -> None:
        configure_logging()
        if owns_database:
            Base.metadata.create_all(bind=engine)
        logger.info("%s %s started", APP_NAME, APP_VERSION)

    return app


app = create_app()
