from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from structlog import get_logger

from homematch.config import settings
from homematch.core.logging import setup_logging
from homematch.database import AsyncSessionFactory
from homematch.errors import ServiceError
from homematch.routers import couples, households, interactions, properties, saved_searches, users

logger = get_logger()

app = FastAPI(title="HomeMatch API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(properties.router)
app.include_router(interactions.router)
app.include_router(couples.router)
app.include_router(users.router)
app.include_router(households.router)
app.include_router(saved_searches.router)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        message = f"{_field_name(first.get('loc', ()))}: {first.get('msg', 'invalid value')}"
    logger.info("Request validation failed", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("Service error", path=request.url.path, error=exc.message, **exc.context)
        message = exc.message if exc.status_code == 503 else "Internal server error"
    else:
        logger.info("Request rejected", path=request.url.path, error=exc.message, status_code=exc.status_code)
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
async def startup_event():
    setup_logging()
    # Rate limiting is skipped entirely when Redis can't be reached
    if not settings.REDIS_URL:
        return
    try:
        redis = Redis.from_url(settings.REDIS_URL)
        await redis.ping()
        await FastAPILimiter.init(redis)
        logger.info("Rate limiter initialised")
    except Exception as e:
        logger.warning("Running without rate limiter", error=str(e))


@app.on_event("shutdown")
async def shutdown_event():
    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()


async def _health() -> dict:
    details = {"status": "ok"}
    try:
        async with AsyncSessionFactory() as session:
            await session.execute(text("SELECT 1"))
        details["database"] = "up"
    except Exception as e:
        details["status"] = "degraded"
        details["database"] = f"down: {str(e)}"
    # Config presence checks (no secrets exposed)
    details["config"] = {
        "db_url_set": bool(settings.DATABASE_URL),
        "redis_url_set": bool(settings.REDIS_URL),
        "auth_url_set": bool(settings.SUPABASE_URL),
        "rate_limiter": FastAPILimiter.redis is not None,
    }
    return details


@app.get("/health", tags=["health"])
async def health():
    return await _health()


@app.get("/api/health", tags=["health"])
async def api_health():
    return await _health()
