"""Error taxonomy for the generation lifecycle."""


class GenerationError(Exception):
    """Base class for every error the generation core raises."""


class ValidationError(GenerationError):
    """Malformed or missing input. Surfaced to the caller as a client error; never retried."""


class ProviderError(GenerationError):
    """The remote provider returned an error or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TimeoutExceeded(GenerationError):
    """Polling gave up after the attempt ceiling. The job may still be running remotely."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Timed out waiting for the render after {attempts} status checks. "
            "The job may still be processing; try regenerating with updated parameters."
        )
        self.attempts = attempts


class ConfigurationError(GenerationError):
    """Deployment is missing credentials or has invalid settings."""
