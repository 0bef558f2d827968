"""FastAPI application entry point."""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core.config import get_settings
from .core.container import Services, build_services
from .core.database import init_db, should_create_tables
from .schemas.base import ErrorResponse

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(services: Services | None = None) -> FastAPI:
    """
    Build the application.

    With `services` given (tests), they are installed right away and the lifespan neither
    touches the database schema nor closes them on shutdown.
    """
    settings = services.settings if services else get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown."""
        if services is not None:
            yield
            return

        built = build_services(settings)
        app.state.services = built
        logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

        # Skip init_db in production (tables already exist)
        if should_create_tables(settings) and built.engine is not None:
            try:
                await init_db(built.engine)
            except Exception as e:
                logger.warning(f"Could not initialize database: {e}")
        yield
        # Shutdown
        await built.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    ## Deal Follow-up Assistant API

    Nudges the stakeholders of stalled Salesforce deals over Slack and tracks what they say.

    ### Key Features

    - **Stale Deal Notifications**: Role-specific Slack DMs for every deal the CRM flags as stalled.
    - **Thread Replies**: Replies are matched back to their deal, recorded, and answered by an agent.
    - **Metrics**: Response rates and deal outcomes per stakeholder.
    """,
        lifespan=lifespan,
    )

    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        error_detail = str(exc)
        # In development/debug mode, include full traceback
        if settings.debug or settings.environment != "production":
            error_detail = f"{str(exc)}\n{traceback.format_exc()}"

        logger.error(f"Unhandled exception on {request.method} {request.url.path}: {error_detail}")

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="internal_error",
                message=f"An unexpected error occurred: {str(exc)[:200]}",
                details=[],
            ).model_dump(),
        )

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": settings.app_version}

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "deal_followup.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
