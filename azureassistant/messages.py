from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config_schemas import VALID_ROLES, Message
from .errors import ValidationError


def normalize_messages(
    messages: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
) -> List[Message]:
    """Validate one message or a sequence of them.

    Every element is checked before anything is returned, so callers can
    append the result knowing the whole batch is valid.
    """
    if isinstance(messages, Mapping):
        batch: Iterable[Any] = [messages]
    elif isinstance(messages, (list, tuple)):
        batch = messages
    else:
        raise ValidationError("Messages must be a mapping or a list of mappings")

    out: List[Message] = []
    for message in batch:
        if not isinstance(message, Mapping):
            raise ValidationError("Each message must have role and content properties")
        role = message.get("role")
        content = message.get("content")
        if not role or not content:
            raise ValidationError("Each message must have role and content properties")
        if role not in VALID_ROLES:
            raise ValidationError("Message role must be user, assistant, or system")
        if not isinstance(content, str):
            raise ValidationError("Message content must be text")
        out.append({"role": role, "content": content})
    return out


def system_instructions(messages: Sequence[Message], fallback: str) -> str:
    # Only the first system message is used; later ones are ignored
    for m in messages:
        if m["role"] == "system":
            return m["content"]
    return fallback


def build_thread_messages(
    messages: Sequence[Message],
    file_ids: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """Convert local messages into the thread message list.

    System messages are dropped (they become assistant instructions). All
    uploaded files are attached to the first user message.
    """
    formatted: List[Dict[str, Any]] = []
    files_added = False
    for m in messages:
        role = m["role"]
        if role == "system":
            continue
        item: Dict[str, Any] = {"role": role, "content": m["content"]}
        if role == "user" and not files_added and file_ids:
            item["attachments"] = [
                {"file_id": fid, "tools": [{"type": "code_interpreter"}]}
                for fid in file_ids
            ]
            files_added = True
        formatted.append(item)
    return formatted


def has_user_message(messages: Iterable[Message]) -> bool:
    return any(m["role"] == "user" for m in messages)
