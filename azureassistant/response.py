from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .config_schemas import VALID_FILE_TYPES
from .errors import StateError, ValidationError

logger = logging.getLogger(__name__)

# The remote run status is not inspected; every completed run reports "stop"
FINISH_REASON = "stop"


@dataclass
class ReplyMessage:
    role: str
    content: str


@dataclass
class CompletionResult:
    run_id: str
    created_at: int
    model: str
    reply: ReplyMessage
    finish_reason: str = FINISH_REASON

    @property
    def choices(self) -> List[ReplyMessage]:
        # Only the latest reply is kept
        return [self.reply]

    def to_dict(self) -> Dict[str, Any]:
        """Render the result in chat-completion shape."""
        return {
            "id": self.run_id,
            "object": "chat.completion",
            "created": self.created_at,
            "model": self.model,
            "choices": [
                {
                    "index": i,
                    "message": {"role": c.role, "content": c.content},
                    "finish_reason": self.finish_reason,
                }
                for i, c in enumerate(self.choices)
            ],
        }


def extract_text(message: Optional[Mapping[str, Any]]) -> str:
    """Pull reply text out of a thread message.

    Handles ``content: [{"text": {"value": ...}}]`` and a plain string content.
    """
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, Mapping):
            text = first.get("text")
            if isinstance(text, Mapping) and isinstance(text.get("value"), str):
                return text["value"]
            if isinstance(text, str):
                return text
    if isinstance(content, str):
        return content
    return ""


def build_result(run: Mapping[str, Any], message: Optional[Mapping[str, Any]], model: str) -> CompletionResult:
    role = (message or {}).get("role") or "assistant"
    return CompletionResult(
        run_id=str(run.get("id", "")),
        created_at=int(time.time()),
        model=model,
        reply=ReplyMessage(role=role, content=extract_text(message)),
    )


def require_result(result: Optional[CompletionResult]) -> CompletionResult:
    if result is None:
        raise StateError("No response available. Call fetch() first to get a response.")
    return result


def render_result(result: CompletionResult, file_type: str = "json") -> str:
    if file_type == "json":
        content: Any = result.reply.content
        try:
            content = json.loads(content)
        except (TypeError, ValueError):
            pass  # not JSON, written as a quoted string
        return json.dumps(content, indent=2, ensure_ascii=False)
    return "\n\n".join(c.content for c in result.choices)


def persist_result(result: Optional[CompletionResult], file_name: Optional[str], file_type: str = "json") -> str:
    """Write the reply to ``file_name`` and return the path written.

    The content goes to a temporary file in the same directory first and is
    then moved over the target, so readers never see a half-written file.
    """
    if not file_name:
        raise ValidationError("file_name is required to save the response")
    result = require_result(result)
    kind = (file_type or "json").lower()
    if kind not in VALID_FILE_TYPES:
        raise ValidationError(f"Unsupported file_type: {file_type!r} (expected json or text)")

    data = render_result(result, kind)
    target = os.path.abspath(file_name)
    fd, tmp_path = tempfile.mkstemp(dir=os.path.dirname(target), prefix=".tmp-", suffix=".part")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
        os.replace(tmp_path, target)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.debug("saved %s response to %s", kind, target)
    return target
