import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from pulse.api.error_handlers import register_exception_handlers
from pulse.core.config import get_settings, load_env_file
from pulse.core.logging import configure_logging, get_logger, set_correlation_id
from pulse.services import Pulse

# Load environment variables and configure logging early
load_env_file()
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: adapters are closed on shutdown."""
    logger.info("Starting up Pulse")
    yield
    pulse = getattr(app.state, "pulse", None)
    if pulse is not None:
        await pulse.aclose()
    logger.info("Shutting down Pulse")


def create_application(pulse: Optional[Pulse] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        pulse: Pre-built dispatch object; built from settings on first use when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    if pulse is not None:
        app.state.pulse = pulse

    configure_middleware(app)
    register_exception_handlers(app)
    register_routers(app)

    return app


def configure_middleware(app: FastAPI) -> None:
    """
    Configure middleware components for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    settings = get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next: Callable):
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id
        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            extra={
                "data": {
                    "request_path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "process_time_ms": round(process_time * 1000, 2),
                }
            },
        )
        return response


def register_routers(app: FastAPI) -> None:
    """
    Register API routers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    settings = get_settings()

    # Import routers here to avoid circular imports
    from pulse.api.routes.accounts import accounts_router
    from pulse.api.routes.connections import connections_router
    from pulse.api.routes.health import health_router
    from pulse.api.routes.providers import providers_router

    app.include_router(health_router, prefix=f"{settings.API_V1_STR}/health", tags=["Health"])
    app.include_router(providers_router, prefix=f"{settings.API_V1_STR}/providers", tags=["Providers"])
    app.include_router(connections_router, prefix=f"{settings.API_V1_STR}/users", tags=["Connections"])
    app.include_router(accounts_router, prefix=f"{settings.API_V1_STR}/users", tags=["Accounts"])


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pulse.main:app", host="0.0.0.0", port=8000, reload=True)
