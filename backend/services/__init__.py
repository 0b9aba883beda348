from .errors import ConfigurationError, ProviderError, TimeoutExceeded, ValidationError
from .normalizer import normalize_request
from .poller import OperationPoller, PollObserver
from .store import sessions

__all__ = [
    "sessions",
    "normalize_request",
    "OperationPoller",
    "PollObserver",
    "ValidationError",
    "ProviderError",
    "TimeoutExceeded",
    "ConfigurationError",
]
