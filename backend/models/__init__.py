from .generation import (
    ASPECT_RATIOS,
    CAMERA_STYLES,
    FPS_OPTIONS,
    VISUAL_STYLES,
    GenerationRequest,
)
from .operation import Operation, OperationResponse
from .session import GenerationSession, PollSession, PollState, SessionStatusResponse

__all__ = [
    "GenerationRequest",
    "ASPECT_RATIOS",
    "CAMERA_STYLES",
    "VISUAL_STYLES",
    "FPS_OPTIONS",
    "Operation",
    "OperationResponse",
    "PollState",
    "PollSession",
    "GenerationSession",
    "SessionStatusResponse",
]
