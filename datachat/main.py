import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from datachat import __version__
from datachat.api.v1.router import api_router
from datachat.core.config import Settings, get_session_secret, get_settings
from datachat.core.errors import DataChatError
from datachat.services.context_store import ContextStore, build_context_store
from datachat.services.file_processor import FileProcessor
from datachat.services.inference_client import InferenceClient

logger = logging.getLogger("datachat.api")


def build_inference_client(settings: Settings) -> InferenceClient:
    return InferenceClient(
        base_url=settings.inference_base_url,
        chat_model=settings.chat_model,
        analysis_model=settings.effective_analysis_model,
        max_new_tokens=settings.max_new_tokens,
        timeout=settings.inference_timeout_seconds,
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    return PlainTextResponse("Invalid request body", status_code=400)


async def _service_error_handler(request: Request, exc: DataChatError) -> PlainTextResponse:
    if exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc)
    return PlainTextResponse(str(exc), status_code=exc.status_code)


def create_app(
    settings: Settings | None = None,
    *,
    file_processor: FileProcessor | None = None,
    inference_client: InferenceClient | None = None,
    context_store: ContextStore | None = None,
) -> FastAPI:
    settings = settings if settings is not None else get_settings()
    app = FastAPI(title=settings.app_name, version=__version__)

    if file_processor is None:
        file_processor = FileProcessor()
    if inference_client is None:
        inference_client = build_inference_client(settings)
    if context_store is None:
        context_store = build_context_store(
            settings.context_backend,
            settings.max_context_chars,
            max_age_seconds=settings.session_max_age_seconds,
        )

    app.state.settings = settings
    app.state.file_processor = file_processor
    app.state.inference_client = inference_client
    app.state.context_store = context_store

    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(DataChatError, _service_error_handler)

    app.add_middleware(
        SessionMiddleware,
        secret_key=get_session_secret(settings),
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=not settings.is_development,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(api_router)
    return app
