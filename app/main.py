import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.clients import MessagesClient, UsersClient
from app.config import Settings
from app.database import build_engine, build_session_factory
from app.exceptions import RelationsError
from app.middleware import TimingMiddleware, install_query_counter
from app.routers import follows
from app.schemas import ErrorEnvelope

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    await app.state.users_client.aclose()
    await app.state.messages_client.aclose()
    await app.state.engine.dispose()


def _error(status_code: int, mensaje: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorEnvelope(mensaje=mensaje).model_dump()
    )


async def relations_error_handler(request: Request, exc: RelationsError) -> JSONResponse:
    return _error(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({
        err["loc"][-1]
        for err in exc.errors()
        if err.get("loc") and isinstance(err["loc"][-1], str) and err["loc"][-1] != "body"
    })
    logger.warning("Rejected %s %s: invalid fields %s", request.method, request.url.path, fields)
    if fields:
        return _error(400, f"Datos inválidos o incompletos: {', '.join(fields)}.")
    return _error(400, "Datos inválidos o incompletos.")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Error interno del servidor al procesar la solicitud.")


def create_app(settings: Settings) -> FastAPI:
    """
    Build the Relations service from an explicitly constructed *settings*.

    The database engine and the upstream HTTP clients are created here and
    stored on ``app.state``; request dependencies read them from there.
    """
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    app = FastAPI(
        title="Relaciones - Follow & Timeline Service",
        description="Follow edges and per-followee timeline composition",
        version=VERSION,
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    install_query_counter(engine)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.users_client = UsersClient.from_settings(settings.USERS_API_URL, settings)
    app.state.messages_client = MessagesClient.from_settings(settings.MESSAGES_API_URL, settings)

    # Middleware
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error envelope
    app.add_exception_handler(RelationsError, relations_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Routers
    app.include_router(follows.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION}

    logger.info(
        "Relations service configured (env=%s, users=%s, messages=%s)",
        settings.APP_ENV, settings.USERS_API_URL, settings.MESSAGES_API_URL,
    )
    return app


app = create_app(Settings())
