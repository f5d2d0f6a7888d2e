from __future__ import annotations

from typing import Optional


class AzureAssistantError(Exception):
    """Base class for every error raised by azureassistant."""


class ConfigError(AzureAssistantError):
    pass


class ValidationError(AzureAssistantError, ValueError):
    pass


class NotFoundError(AzureAssistantError, FileNotFoundError):
    pass


class StateError(AzureAssistantError):
    """Raised when an operation needs a result or resource that does not exist yet."""


class RemoteError(AzureAssistantError):
    """A non-success HTTP response from the Assistants API."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class UploadError(RemoteError):
    pass


class AssistantError(RemoteError):
    pass


class ThreadError(RemoteError):
    pass


class RunError(RemoteError):
    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: str = "",
        *,
        run_status: Optional[str] = None,
    ) -> None:
        super().__init__(message, status, body)
        self.run_status = run_status


class RunTimeoutError(AzureAssistantError, TimeoutError):
    """The run did not reach a terminal status within the poll ceiling."""


class RequestTimeoutError(AzureAssistantError, TimeoutError):
    """A single HTTP request exceeded the configured client timeout."""
