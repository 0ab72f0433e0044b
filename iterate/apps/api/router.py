import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from iterate.config.settings import Settings, get_settings
from iterate.dependencies import get_sync_coordinator, get_test_author
from iterate.exceptions import AuthenticationError, ConfigurationError, IterateError
from iterate.protocols.authoring_protocol import AuthorClientProtocol
from iterate.schemas import GenerateTestsRequest, GenerateTestsResponse, GenerationRequest
from iterate.services.authoring import generate_for_request
from iterate.services.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/iterate", tags=["iterate"])


def verify_api_key(
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Check the shared key sent with direct generation requests."""
    if not settings.API_KEY:
        raise HTTPException(status_code=500, detail="API key secret not configured")
    if not x_api_key:
        raise HTTPException(status_code=401, detail="Missing x-api-key header")
    if not hmac.compare_digest(x_api_key.encode(), settings.API_KEY.encode()):
        raise HTTPException(status_code=401, detail="Invalid API key")


@router.post("/github-webhook", response_model=Dict[str, Any])
async def github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(None),
    x_hub_signature_256: Optional[str] = Header(None),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Receive a push or pull_request event and synchronize its test files."""
    body = await request.body()
    logger.info(f"Received webhook event: {x_github_event}")

    try:
        result = await coordinator.handle_webhook(
            x_github_event or "", body, x_hub_signature_256
        )
    except AuthenticationError:
        logger.error("Invalid webhook signature")
        return JSONResponse(status_code=401, content={"error": "Invalid signature"})
    except ConfigurationError:
        raise
    except IterateError as e:
        logger.error(f"Webhook processing failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error while processing webhook")
        raise HTTPException(status_code=500, detail=f"Internal server error: {e}")

    return result.model_dump(mode="json")


@router.post(
    "/generate-tests",
    response_model=GenerateTestsResponse,
    dependencies=[Depends(verify_api_key)],
)
async def generate_tests(
    request: GenerateTestsRequest,
    author: AuthorClientProtocol = Depends(get_test_author),
):
    """Generate tests for code posted directly by a caller."""
    required = {
        "code": request.code,
        "framework": request.framework,
        "filePath": request.file_path,
        "testFilePath": request.test_file_path,
    }
    missing = [name for name, value in required.items() if not value.strip()]
    if missing:
        raise HTTPException(
            status_code=400, detail=f"Missing required fields: {', '.join(missing)}"
        )

    generation = GenerationRequest(
        current_code=request.code,
        source_path=request.file_path,
        test_path=request.test_file_path,
        framework=request.framework,
        previous_code=request.previous_code,
        existing_tests=request.existing_tests,
        change_type=request.change_type,
    )
    try:
        result = await generate_for_request(author, generation)
    except IterateError as e:
        logger.error(f"Test generation failed for {request.file_path}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return GenerateTestsResponse(
        tests=result.tests,
        comments=result.metadata.get("comments", ""),
        metadata=result.metadata,
    )


@router.get("/health")
async def iterate_health_check():
    """Simple health check for webhook endpoints."""
    return {"status": "webhook endpoints available"}


@router.get("/config", response_model=Dict[str, Any])
async def get_config(settings: Settings = Depends(get_settings)):
    """Effective non-secret configuration."""
    return {
        "hosting_backend": settings.HOSTING_BACKEND,
        "generation_strategy": settings.GENERATION_STRATEGY,
        "test_framework": settings.TEST_FRAMEWORK,
        "allowed_branches": settings.ALLOWED_BRANCHES,
        "supported_extensions": settings.supported_extensions,
        "bot_signature": settings.BOT_SIGNATURE,
        "skip_directive": settings.SKIP_DIRECTIVE,
        "cleanup_removed_functions": settings.CLEANUP_REMOVED_FUNCTIONS,
        "webhook_secret_configured": bool(settings.GITHUB_WEBHOOK_SECRET),
        "openai_model": settings.OPENAI_MODEL,
    }
