"""Turn a loosely-typed generation request into a canonical GenerationRequest."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pydantic

from models.generation import GenerationRequest
from services.errors import ValidationError


def _describe(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


def normalize_request(raw: Any) -> GenerationRequest:
    """
    Validate a raw request and fill documented defaults.

    Pure: no I/O. Raises ValidationError on malformed input. Normalizing the
    payload of an already-canonical request returns an equal request.
    """
    if isinstance(raw, GenerationRequest):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a JSON object")
    try:
        return GenerationRequest.model_validate(raw)
    except pydantic.ValidationError as exc:
        if any(error["loc"][:1] == ("prompt",) for error in exc.errors()):
            raise ValidationError("Prompt is required") from exc
        raise ValidationError(_describe(exc)) from exc
