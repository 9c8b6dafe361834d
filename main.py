import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import config
from config import Settings, get_settings
from response_module import (
    HealthResponse,
    ModelInfo,
    error_response,
    format_outcome,
    format_timestamp,
)
from upload_module import UploadValidationError, build_analysis_request
from vision_module import VisionGateway

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Raises when GOOGLE_API_KEY is missing, which aborts startup before any request is served
    current = get_settings()
    app.state.gateway = VisionGateway.from_settings(current)
    logger.info(
        "%s ready: model=%s provider=%s key=%s",
        current.service_name,
        current.model_name,
        current.provider_name,
        config.describe_api_key(current.google_api_key),
    )
    yield


app = FastAPI(title=f"{settings.service_name} Image Analysis", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_gateway(request: Request) -> VisionGateway:
    return request.app.state.gateway


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(message, status_code=400)


@app.get("/health", response_model=HealthResponse)
def health(current: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service=current.service_name,
        model=current.model_display_name,
        provider=current.provider_name,
        api_configured=current.api_configured,
        timestamp=format_timestamp(),
    )


@app.post("/upload_and_query")
async def upload_and_query(
    image: Optional[UploadFile] = File(None),
    query: Optional[str] = Form(None),
    current: Settings = Depends(get_settings),
    gateway: VisionGateway = Depends(get_gateway),
):
    try:
        analysis_request = await build_analysis_request(image, query, current.max_upload_bytes)
    except UploadValidationError as e:
        return error_response(e.message, status_code=400)

    try:
        outcome = await gateway.analyze(analysis_request)
    except Exception as e:
        logger.exception("Unexpected error analysing %s", analysis_request.image.filename)
        return error_response(str(e), status_code=500)

    model_info = ModelInfo(name=current.service_name, provider=current.provider_name)
    return format_outcome(analysis_request, outcome, model_info)


# Registered last so the API routes above take precedence over file lookups
if settings.static_dir.is_dir():
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
else:
    logger.warning("Static directory %s not found; / will not be served", settings.static_dir)


if __name__ == "__main__":
    import uvicorn

    logger.info("%s running: http://localhost:%d", settings.service_name, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
