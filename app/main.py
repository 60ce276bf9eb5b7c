import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import settings
from app.core.rate_limiter import rate_limiter
from app.database import engine, init_db
from app.logging_config import setup_logging
from app.routers import admin, auth, taxonomy

setup_logging()
logger = logging.getLogger(__name__)

PLACEHOLDER_SECRET = "replace-with-a-long-random-secret-key"
PLACEHOLDER_DB_CREDENTIALS = "username:password@"

# path -> Settings attribute holding its per-minute allowance
RATE_LIMITED_PATHS = {
    "/api/admin/auth/login": "rate_limit_login_per_min",
    "/api/admin/upload-csv": "rate_limit_csv_upload_per_min",
}

app = FastAPI(
    title="Profile Directory Admin API",
    description="Admin backend for profiles, categories, tags and CSV bulk import.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (auth, admin, taxonomy):
    app.include_router(module.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.middleware("http")
async def apply_rate_limits(request: Request, call_next):
    path = request.url.path
    setting_name = RATE_LIMITED_PATHS.get(path)
    if request.method == "OPTIONS" or setting_name is None:
        return await call_next(request)

    limit = getattr(settings, setting_name)
    if limit > 0:
        client_ip = request.client.host if request.client else "unknown"
        allowed, retry_after = rate_limiter.allow(f"{client_ip}:{path}", limit=limit, window_seconds=60)
        if not allowed:
            logger.warning("Rate limit hit for %s on %s", client_ip, path)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please retry shortly."},
                headers={"Retry-After": str(retry_after)},
            )
    return await call_next(request)


@app.get("/")
def root():
    return {"message": "Profile Directory Admin API. Sign in at /api/admin/auth/login."}


@app.get("/health/live")
def health_live():
    return {"status": "ok"}


@app.get("/health/ready")
def health_ready():
    """Ready once the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed")
        return JSONResponse(status_code=503, content={"status": "not_ready"})
    return {"status": "ready"}


def check_deployment_settings() -> None:
    """Refuse placeholder secrets in production; elsewhere only warn about them."""
    problems = []
    if settings.secret_key == PLACEHOLDER_SECRET:
        problems.append("SECRET_KEY is the placeholder default")
    if PLACEHOLDER_DB_CREDENTIALS in settings.database_url:
        problems.append("DATABASE_URL uses placeholder credentials")

    production = (settings.app_env or "development").lower() in {"production", "prod"}
    if production and problems:
        raise RuntimeError("; ".join(problems))
    for problem in problems:
        logger.warning("%s. Set it in .env for secure deployments.", problem)
    if not settings.s3_bucket:
        logger.warning("S3_BUCKET is not set; image upload and extraction will fail.")


@app.on_event("startup")
def on_startup():
    logger.info("Starting Profile Directory Admin API (env=%s)", settings.app_env)
    check_deployment_settings()
    init_db()
