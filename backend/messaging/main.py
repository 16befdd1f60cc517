"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from messaging.config import Settings, get_settings
from messaging.db.session import Database
from messaging.logging_config import configure_logging
from messaging.routers import conversations, messages
from messaging.services.attachments import AttachmentStore, LocalAttachmentStore
from messaging.services.errors import MessagingError

logger = logging.getLogger(__name__)


def _warm_database(database: Database) -> None:
    """Prime the connection pool at process start."""

    try:
        with database.session() as db:
            db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database warm-up failed; continuing without startup pre-warm.")


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    attachment_store: AttachmentStore | None = None,
) -> FastAPI:
    """Build the API with its storage clients owned by the app lifespan."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = database is None
        app.state.database = database or Database(settings.database_url)
        _warm_database(app.state.database)
        try:
            yield
        finally:
            if owns_database:
                app.state.database.dispose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.attachment_store = attachment_store or LocalAttachmentStore(
        directory=settings.uploads_dir,
        url_prefix=settings.uploads_url_prefix,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MessagingError)
    async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("messaging.request_failed path=%s kind=%s", request.url.path, exc.kind)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "kind": exc.kind},
        )

    app.include_router(conversations.router, tags=["conversations"])
    app.include_router(messages.router, tags=["messages"])
    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=settings.uploads_dir),
        name="uploads",
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        """Simple health check endpoint."""

        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("messaging.main:app", host="0.0.0.0", port=8000, reload=True)
