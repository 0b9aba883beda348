"""Stateless submit / status endpoints. Callers run their own poll loop against these."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from models.generation import GenerationOptionsResponse
from models.operation import OperationResponse
from routes.deps import get_provider
from services.errors import ValidationError
from services.normalizer import normalize_request
from services.provider import VideoProvider

router = APIRouter(tags=["generate-video"])
logger = logging.getLogger(__name__)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.get("/generate-video/options", response_model=GenerationOptionsResponse)
def generation_options() -> GenerationOptionsResponse:
    return GenerationOptionsResponse()


@router.post("/generate-video", response_model=OperationResponse, response_model_exclude_none=True)
async def submit_generation(
    request: Request,
    provider: VideoProvider = Depends(get_provider),
) -> OperationResponse | JSONResponse:
    """Validate the request and start a Veo job. 400 on bad input, 500 on provider failure."""
    try:
        body = await request.json()
    except ValueError:
        return error_response("Request body must be valid JSON", 400)

    try:
        canonical = normalize_request(body)
    except ValidationError as exc:
        logger.info("[generate] Rejected request: %s", exc)
        return error_response(str(exc), 400)

    try:
        operation = await provider.submit(canonical)
    except Exception as exc:  # noqa: BLE001
        logger.error("[generate] Veo generation error: %s", exc, exc_info=True)
        return error_response(str(exc) or "Unknown error", 500)

    return OperationResponse.from_operation(operation)


@router.get("/generate-video/status", response_model=OperationResponse, response_model_exclude_none=True)
async def operation_status(
    operation: str | None = Query(None, description="operationName from a prior submission"),
    provider: VideoProvider = Depends(get_provider),
) -> OperationResponse | JSONResponse:
    if not operation or not operation.strip():
        return error_response("operation query parameter is required", 400)
    try:
        result = await provider.query(operation.strip())
    except Exception as exc:  # noqa: BLE001
        logger.error("[generate] Veo operation check failed: %s", exc, exc_info=True)
        return error_response(str(exc) or "Unknown error", 500)
    if result.error is not None:
        return error_response(result.error, 500)
    return OperationResponse.from_operation(result)
