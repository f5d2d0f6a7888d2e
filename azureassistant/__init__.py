from .client import AzureAssistantClient
from .config_schemas import ClientConfig
from .errors import (
    AssistantError,
    AzureAssistantError,
    ConfigError,
    NotFoundError,
    RemoteError,
    RequestTimeoutError,
    RunError,
    RunTimeoutError,
    StateError,
    ThreadError,
    UploadError,
    ValidationError,
)
from .response import CompletionResult, ReplyMessage

__all__ = [
    "AzureAssistantClient",
    "ClientConfig",
    "CompletionResult",
    "ReplyMessage",
    "AzureAssistantError",
    "ConfigError",
    "ValidationError",
    "NotFoundError",
    "StateError",
    "RemoteError",
    "UploadError",
    "AssistantError",
    "ThreadError",
    "RunError",
    "RunTimeoutError",
    "RequestTimeoutError",
]
