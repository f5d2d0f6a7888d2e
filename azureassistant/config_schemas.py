from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, TypedDict, Union

from .errors import ConfigError

Role = Literal["user", "assistant", "system"]
FileType = Literal["json", "text"]

VALID_ROLES = ("user", "assistant", "system")
VALID_FILE_TYPES = ("json", "text")


class Message(TypedDict):
    role: Role
    content: str


class GenerationOptions(TypedDict, total=False):
    max_tokens: int
    temperature: float
    top_p: float


class FileConfig(TypedDict, total=False):
    file_path: str
    raw_file: Union[str, Dict[str, Any], List[Any]]
    file_name: str
    file_type: FileType


class SaveResponseConfig(TypedDict, total=False):
    file_name: str
    file_type: FileType


class FileInfo(TypedDict):
    path: str
    type: FileType


class ConversationState(TypedDict):
    messages: List[Message]
    files: List[FileInfo]
    options: GenerationOptions
    assistant_id: Optional[str]
    thread_id: Optional[str]


DEFAULT_OPTIONS: GenerationOptions = {
    "max_tokens": 4000,
    "temperature": 0.7,
}

DEFAULT_API_VERSION = "2024-08-01-preview"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_INIT_MSG = "You are a helpful assistant."
DEFAULT_ASSISTANT_NAME = "File Analysis Assistant"

# Run polling: 60 checks, 5 seconds apart (5 minute ceiling)
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLL_ATTEMPTS = 60

ENV_ENDPOINT = "AZURE_OPENAI_ENDPOINT"
ENV_API_KEY = "AZURE_OPENAI_API_KEY"
ENV_DEPLOYMENT = "AZURE_OPENAI_DEPLOYMENT"
ENV_API_VERSION = "AZURE_OPENAI_API_VERSION"


@dataclass
class ClientConfig:
    endpoint: str
    api_key: str
    deployment_name: str
    api_version: str = DEFAULT_API_VERSION
    # Per-request HTTP timeout in milliseconds
    timeout: int = DEFAULT_TIMEOUT_MS
    init_msg: str = DEFAULT_INIT_MSG
    assistant_name: str = DEFAULT_ASSISTANT_NAME
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.endpoint:
            raise ConfigError("Endpoint is required")
        if not self.api_key:
            raise ConfigError("API key is required")
        if not self.deployment_name:
            raise ConfigError("Deployment name is required")
        if self.max_poll_attempts < 1:
            raise ConfigError("max_poll_attempts must be at least 1")
        if self.poll_interval < 0:
            raise ConfigError("poll_interval must not be negative")
        if self.endpoint.endswith("/"):
            self.endpoint = self.endpoint[:-1]
        self.api_version = self.api_version or DEFAULT_API_VERSION
        self.init_msg = self.init_msg or DEFAULT_INIT_MSG

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Build a config from AZURE_OPENAI_* environment variables.

        Keyword overrides win over the environment.
        """
        values: Dict[str, Any] = {
            "endpoint": os.getenv(ENV_ENDPOINT, ""),
            "api_key": os.getenv(ENV_API_KEY, ""),
            "deployment_name": os.getenv(ENV_DEPLOYMENT, ""),
            "api_version": os.getenv(ENV_API_VERSION, DEFAULT_API_VERSION),
        }
        values.update(overrides)
        return cls(**values)
