from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class Operation:
    """
    Local, advisory copy of a remote generation job.

    The provider owns the canonical state; this is refreshed on every poll.
    """

    operation_name: str
    done: bool = False
    video_uris: tuple[str, ...] = ()
    throttle_seconds: float | None = None
    error: str | None = None

    @property
    def is_pending(self) -> bool:
        return not self.done

    @property
    def has_output(self) -> bool:
        return self.done and len(self.video_uris) > 0

    @property
    def primary_uri(self) -> str | None:
        return self.video_uris[0] if self.video_uris else None

    @property
    def is_anomalous(self) -> bool:
        """done=true with neither outputs nor an error."""
        return self.done and not self.video_uris and self.error is None


class OperationResponse(BaseModel):
    """Wire form of an Operation: `{operationName, done, videoUris?, throttleSeconds?}`."""

    model_config = ConfigDict(populate_by_name=True)

    operation_name: str = Field(alias="operationName")
    done: bool
    video_uris: list[str] | None = Field(None, alias="videoUris")
    throttle_seconds: float | None = Field(None, alias="throttleSeconds")

    @classmethod
    def from_operation(cls, operation: Operation) -> OperationResponse:
        return cls(
            operation_name=operation.operation_name,
            done=operation.done,
            video_uris=list(operation.video_uris) or None,
            throttle_seconds=operation.throttle_seconds,
        )
