import json
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .connectors import close_service_layer, create_service_layer, get_service
from .connectors.base import ServiceError
from .models import (
    DirectMessageRequest,
    EngageRequest,
    GenerateRequest,
    HealthResponse,
    PublishRequest,
)
from .workflow import WorkflowOptions, build_workflow

load_dotenv()

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

WORKFLOW_ROUTES = {"/api/workflow", "/api/workflow/download"}

FALLBACK_MESSAGES = {
    "/api/workflow": "Failed to build workflow definition.",
    "/api/workflow/download": "Failed to build workflow definition.",
    "/api/generate": "Failed to generate content. Check server logs.",
    "/api/twitter/publish": "Failed to publish tweet. Check server logs.",
    "/api/twitter/engage": "Failed to process engagement actions. Check server logs.",
    "/api/twitter/dm": "Failed to send direct message(s). Check server logs.",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.simulator_state, app.state.services = create_service_layer(settings)
    active = {
        name: type(service).__name__
        for name, service in app.state.services.items()
        if not name.startswith("_")
    }
    logger.info("Service layer ready (mode=%s): %s", settings.connector_mode, active)
    try:
        yield
    finally:
        await close_service_layer(app.state.services)


app = FastAPI(
    title="TweetForge API",
    description="AI tweet generation, Twitter automation and n8n workflow export",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Dependencies ---

def get_generator(request: Request):
    return get_service(request.app.state.services, "openai")


def get_twitter(request: Request):
    return get_service(request.app.state.services, "twitter")


# --- Error handling ---

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path in WORKFLOW_ROUTES:
        message = "Invalid workflow configuration."
    else:
        message = "Invalid request payload."
    issues = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": message, "issues": issues})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.error("[%s] %s (%s)", request.url.path, exc, exc.error_type)
    status_code = 429 if exc.error_type == "rate_limit" else 500
    return JSONResponse(
        status_code=status_code,
        content={"message": str(exc), "errorType": exc.error_type},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[%s] unhandled error", request.url.path)
    message = FALLBACK_MESSAGES.get(request.url.path, "Internal server error.")
    return JSONResponse(status_code=500, content={"message": message})


# --- Routes ---

@app.get("/api/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(status="ok", connector_mode=settings.connector_mode)


@app.post("/api/workflow")
def create_workflow(options: WorkflowOptions, settings: Settings = Depends(get_settings)):
    """Build an importable n8n workflow plus download metadata."""
    result = build_workflow(options, base_url=settings.worker_base_url)
    return result.to_n8n()


@app.post("/api/workflow/download")
def download_workflow(options: WorkflowOptions, settings: Settings = Depends(get_settings)):
    """Same document as /api/workflow, served as a JSON file attachment."""
    result = build_workflow(options, base_url=settings.worker_base_url)
    return Response(
        content=json.dumps(result.workflow.to_n8n(), indent=2),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{result.metadata.download_name}"'
        },
    )


@app.post("/api/generate")
async def generate(request: GenerateRequest, generator=Depends(get_generator)):
    result = await generator.generate(request)
    return result.model_dump(by_alias=True, exclude_none=True)


@app.post("/api/twitter/publish")
async def publish(request: PublishRequest, twitter=Depends(get_twitter)):
    tweet = await twitter.publish_tweet(
        status=request.tweet,
        alt_text=request.alt_text,
        thread=request.thread,
        image_base64=request.image_base64,
    )
    return {"status": "posted", "tweet": tweet}


@app.post("/api/twitter/engage")
async def engage(request: EngageRequest, twitter=Depends(get_twitter)):
    results = await twitter.perform_engagement(request.engagements)
    return {"status": "ok", "results": results}


@app.post("/api/twitter/dm")
async def direct_message(request: DirectMessageRequest, twitter=Depends(get_twitter)):
    outcomes = []
    for recipient in request.recipients:
        outcomes.append(
            await twitter.send_direct_message(
                message=request.message,
                recipient_handle=recipient.handle,
                recipient_id=recipient.id,
            )
        )
    return {"status": "sent", "outcomes": outcomes}
