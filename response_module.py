from datetime import datetime
from typing import Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from upload_module import AnalysisRequest
from vision_module import InferenceFailure, InferenceOutcome

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


class ModelInfo(BaseModel):
    name: str
    provider: str


class AnalysisResult(BaseModel):
    content: str
    timestamp: str
    query: str
    image_filename: str


class AnalysisResponse(BaseModel):
    success: bool = True
    model_info: ModelInfo
    analysis: AnalysisResult


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str
    service: str
    model: str
    provider: str
    api_configured: bool
    timestamp: str


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def success_response(request: AnalysisRequest, content: str, model_info: ModelInfo) -> JSONResponse:
    result = AnalysisResult(
        content=content,
        timestamp=format_timestamp(),
        query=request.query,
        image_filename=request.image.filename,
    )
    body = AnalysisResponse(model_info=model_info, analysis=result)
    return JSONResponse(status_code=200, content=body.model_dump())


def format_outcome(request: AnalysisRequest, outcome: InferenceOutcome, model_info: ModelInfo) -> JSONResponse:
    """Map a gateway outcome to the JSON envelope and its status code."""
    if isinstance(outcome, InferenceFailure):
        return error_response(outcome.message, status_code=500)
    return success_response(request, outcome.content, model_info)
