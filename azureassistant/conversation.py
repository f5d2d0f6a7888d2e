from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence, Union

from .config_schemas import DEFAULT_OPTIONS, ConversationState, GenerationOptions, Message
from .errors import ValidationError
from .messages import normalize_messages
from .staging import StagedFile, stage_file

if TYPE_CHECKING:
    from .response import CompletionResult


OPTION_KEYS = ("max_tokens", "temperature", "top_p")


def _check_options(options: Mapping[str, Any]) -> None:
    unknown = [k for k in options if k not in OPTION_KEYS]
    if unknown:
        raise ValidationError(f"Unknown generation options: {', '.join(sorted(unknown))}")
    if "max_tokens" in options:
        mt = options["max_tokens"]
        if isinstance(mt, bool) or not isinstance(mt, int) or mt <= 0:
            raise ValidationError("max_tokens must be a positive integer")
    if "temperature" in options:
        t = options["temperature"]
        if isinstance(t, bool) or not isinstance(t, (int, float)) or not 0 <= t <= 2:
            raise ValidationError("temperature must be between 0 and 2")
    if "top_p" in options:
        p = options["top_p"]
        if isinstance(p, bool) or not isinstance(p, (int, float)) or not 0 <= p <= 1:
            raise ValidationError("top_p must be between 0 and 1")


@dataclass
class ConversationSession:
    """Mutable state of one conversation.

    The dispatcher receives the session for the duration of a run and writes
    the remote identifiers and the completion result back into it.
    """
    messages: List[Message] = field(default_factory=list)
    files: List[StagedFile] = field(default_factory=list)
    options: GenerationOptions = field(default_factory=lambda: dict(DEFAULT_OPTIONS))  # type: ignore[assignment]
    assistant_id: Optional[str] = None
    thread_id: Optional[str] = None
    last_result: Optional["CompletionResult"] = None
    # How many messages/files have already been delivered to the remote thread
    sent_messages: int = 0
    sent_files: int = 0

    def add_messages(self, messages: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]) -> None:
        self.messages.extend(normalize_messages(messages))

    def add_file(self, file_config: Mapping[str, Any]) -> StagedFile:
        staged = stage_file(file_config)
        self.files.append(staged)
        return staged

    def set_options(self, options: Mapping[str, Any]) -> None:
        _check_options(options)
        self.options = {**self.options, **options}  # type: ignore[typeddict-item]

    def clear(self) -> None:
        self.messages = []
        self.files = []
        self.assistant_id = None
        self.thread_id = None
        self.last_result = None
        self.sent_messages = 0
        self.sent_files = 0

    def forget_remote(self) -> None:
        # Thread lives and dies with its assistant
        self.assistant_id = None
        self.thread_id = None
        self.sent_messages = 0
        self.sent_files = 0

    @property
    def pending_messages(self) -> List[Message]:
        return self.messages[self.sent_messages:]

    @property
    def pending_files(self) -> List[StagedFile]:
        return self.files[self.sent_files:]

    def is_empty(self) -> bool:
        return not self.messages and not self.files

    def snapshot(self) -> ConversationState:
        return {
            "messages": copy.deepcopy(self.messages),
            "files": [{"path": f.path, "type": f.kind} for f in self.files],
            "options": dict(self.options),  # type: ignore[typeddict-item]
            "assistant_id": self.assistant_id,
            "thread_id": self.thread_id,
        }
