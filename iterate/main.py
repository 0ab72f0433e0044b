import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from iterate import __version__
from iterate.apps.api import router
from iterate.config.settings import get_settings
from iterate.exceptions import ConfigurationError
from iterate.logging_config import configure_logging

settings = get_settings()
configure_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)

logger = logging.getLogger(__name__)

if not settings.GITHUB_WEBHOOK_SECRET:
    logger.warning(
        "GITHUB_WEBHOOK_SECRET not set - webhook signature verification is disabled"
    )

# --- Application ---

app = FastAPI(
    title="Iterate Test Sync API",
    version=__version__,
    description="Keeps unit test files in step with source changes pushed to a repository",
)

app.include_router(router.router, prefix="/api")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health")
async def health_check():
    """
    Simple health check endpoint to confirm the API is running.
    """
    return {"status": "ok"}
