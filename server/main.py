"""
Tiered item cache server.

In-process LRU (L1) -> optional Redis (L2) -> relational store, behind a
small FastAPI item API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.exceptions import ItemNotFoundError, StoreUnavailableError, ValidationError
from core.health import get_health_status, set_startup_time
from core.logging import configure_logging, get_logger
from routers import items

# Initialize settings and logging
settings = container.settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting item cache server",
                cache_max=settings.cache_max,
                cache_ttl_ms=settings.cache_ttl,
                shared_cache=settings.shared_cache_enabled)
    set_startup_time()

    # Raises StoreUnavailableError if no engine can be opened: refuse to serve
    await container.database().startup()

    shared_cache = container.shared_cache()
    if shared_cache is not None:
        await shared_cache.startup()
    else:
        logger.info("Shared cache disabled (REDIS_URL not set)")

    logger.info("Services started successfully", store_backend=container.database().backend)
    yield

    if shared_cache is not None:
        await shared_cache.shutdown()
    await container.database().shutdown()
    logger.info("Services shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="LRU Caching Server API",
    version="1.0.0",
    description="Read-through item cache over memory, Redis and a relational store",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error"}
            )


app.add_middleware(CatchAllExceptionsMiddleware)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Rejected request", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.info("Rejected request", path=request.url.path, error=message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(ItemNotFoundError)
async def not_found_handler(request: Request, exc: ItemNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found"})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error("Store unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


# Include routers
app.include_router(items.router)


@app.get("/health")
async def health_check():
    """Store and shared cache reachability plus L1 size."""
    return await get_health_status(
        container.database(),
        container.memory_cache(),
        container.shared_cache(),
    )


@app.get("/metrics")
async def metrics():
    """Prometheus exposition of cache hit/miss counters."""
    cache_metrics = container.metrics()
    return Response(content=cache_metrics.render(), media_type=cache_metrics.content_type)


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting item cache server",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
