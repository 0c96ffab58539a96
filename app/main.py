import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.config import get_settings
from app.api.routes import slack, credentials
from app.services.errors import ContentSourceAuthError, ContentSourceSyncError

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# slack_sdk logs every request at DEBUG
logging.getLogger("slack_sdk").setLevel(logging.INFO)

logger = logging.getLogger("app")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

app = FastAPI(
    title=settings.app_name,
    description="Slack content sync and normalization service",
    version="0.1.0",
)


@app.exception_handler(ContentSourceAuthError)
async def auth_error_handler(request: Request, exc: ContentSourceAuthError):
    logger.warning(f"{request.method} {request.url.path}: auth failed for source {exc.source_id}: {exc.message}")
    return JSONResponse(status_code=401, content={"detail": exc.message})


@app.exception_handler(ContentSourceSyncError)
async def sync_error_handler(request: Request, exc: ContentSourceSyncError):
    logger.error(f"{request.method} {request.url.path}: sync failed for source {exc.source_id}: {exc.message}")
    return JSONResponse(status_code=502, content={"detail": exc.message})


app.include_router(credentials.router, prefix="/api", tags=["Credentials"])
app.include_router(slack.router, prefix="/api/slack", tags=["Slack"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": "0.1.0",
        "endpoints": {
            "connect": "/api/slack/connect",
            "sync": "/api/slack/sync",
            "items": "/api/slack/items",
            "events": "/api/slack/events",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "channels_configured": len(settings.channel_id_list),
        "file_storage": bool(settings.storage_dir),
    }
