from fastapi import FastAPI, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional
import logging
import logging.config

import uvicorn

from image_gateway import config
from image_gateway.asset_store import AssetStore, create_s3_client
from image_gateway.database import SessionLocal, engine, init_db
from image_gateway.errors import CallableError
from image_gateway.generation_service import UNAUTHENTICATED_MESSAGE, ImageGenerationService, to_response
from image_gateway.image_provider import GeminiImageProvider
from image_gateway.logging_config import LOGGING_CONFIG
from image_gateway.metadata_store import MetadataStore
from image_gateway.schemas import CallableRequest, CallableResponse
from image_gateway.tracing import setup_tracing

from prometheus_fastapi_instrumentator import Instrumentator


logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)

CALLER_UID_HEADER = "X-Caller-Uid"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    engine.dispose()


app = FastAPI(
    title="Image Generation API Gateway",
    description="Generates images with Gemini, stores them and records the generation",
    version="1.0.0",
    lifespan = lifespan
)

Instrumentator().instrument(app).expose(app)
setup_tracing(app)


@app.exception_handler(CallableError)
async def callable_error_handler(request: Request, exc: CallableError):
    logger.warning(
        "Rejected generateImage call",
        extra={"status": exc.status, "error": exc.message}
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # a missing caller identity wins over a malformed body
    if not request.headers.get(CALLER_UID_HEADER):
        error = CallableError.unauthenticated(UNAUTHENTICATED_MESSAGE)
    else:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        error = CallableError.invalid_argument(message)
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_image_provider() -> GeminiImageProvider:
    return GeminiImageProvider(
        api_key=config.GEMINI_API_KEY,
        model=config.GEMINI_IMAGE_MODEL,
        fetch_timeout=config.IMAGE_FETCH_TIMEOUT,
    )


@lru_cache
def get_asset_store() -> AssetStore:
    s3_client = create_s3_client(
        endpoint_url=config.STORAGE_ENDPOINT_URL,
        access_key=config.STORAGE_ACCESS_KEY,
        secret_key=config.STORAGE_SECRET_KEY,
        region=config.STORAGE_REGION,
    )
    return AssetStore(s3_client, config.STORAGE_BUCKET, config.STORAGE_PUBLIC_BASE_URL)


def get_generation_service(
    db: Session = Depends(get_db),
    provider: GeminiImageProvider = Depends(get_image_provider),
    asset_store: AssetStore = Depends(get_asset_store),
) -> ImageGenerationService:
    return ImageGenerationService(provider, asset_store, MetadataStore(db))


def get_caller_uid(x_caller_uid: Optional[str] = Header(default=None, alias=CALLER_UID_HEADER)) -> Optional[str]:
    """Caller identity, already verified by the platform's auth layer."""
    return x_caller_uid or None


# validate, generate with Gemini, upload every image, record the generation
@app.post(
    "/generateImage",
    response_model=CallableResponse,
    response_model_exclude_none=True,
)
def generate_image(
    envelope: CallableRequest,
    uid: Optional[str] = Depends(get_caller_uid),
    service: ImageGenerationService = Depends(get_generation_service),
):
    """
    Generates images for a prompt, optionally editing an input image.
    Validation and auth problems are returned as structured errors; any later
    failure is reported as {"success": false, "error": ...}
    """
    outcome = service.generate(envelope.data, uid)
    return CallableResponse(result=to_response(outcome))


def run():
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_config=LOGGING_CONFIG,
        limit_concurrency=config.MAX_INSTANCES,
    )
