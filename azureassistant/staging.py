from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from .config_schemas import VALID_FILE_TYPES, FileType
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "json": "application/json",
    "text": "text/plain",
}


@dataclass
class StagedFile:
    """A local file validated and ready for upload."""
    path: str
    kind: FileType
    parsed_content: Any
    raw_content: str


@dataclass
class UploadedFile:
    remote_id: str
    local_path: str
    kind: FileType


def _kind_from_extension(path: str) -> FileType:
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        return "json"
    return "text"


def _check_kind(kind: Optional[str]) -> Optional[FileType]:
    if kind is None:
        return None
    if kind not in VALID_FILE_TYPES:
        raise ValidationError(f"Unsupported file_type: {kind!r} (expected json or text)")
    return kind  # type: ignore[return-value]


def stage_file(file_config: Mapping[str, Any]) -> StagedFile:
    """Validate a file config and turn it into a StagedFile.

    Accepts either ``{"file_path": ...}`` or ``{"raw_file": ..., "file_name": ...}``,
    with an optional ``file_type`` that overrides inference. Nothing is uploaded
    here; the file is sent when the conversation runs.
    """
    explicit = _check_kind(file_config.get("file_type"))
    raw = file_config.get("raw_file")

    if raw is not None and raw != "":
        file_name = file_config.get("file_name")
        if not file_name:
            raise ValidationError("file_name is required when using raw_file")
        path = str(file_name)
        if explicit:
            kind = explicit
        elif isinstance(raw, (dict, list)):
            kind = "json"
        else:
            kind = "text"
    elif file_config.get("file_path"):
        path = str(file_config["file_path"])
        if not os.path.isfile(path):
            raise NotFoundError(f"File not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = fh.read()
        except UnicodeDecodeError as e:
            raise ValidationError(f"File is not valid UTF-8 text: {path} ({e})") from e
        kind = explicit or _kind_from_extension(path)
    else:
        raise ValidationError("Either raw_file or file_path must be provided")

    if isinstance(raw, str):
        raw_text = raw
    else:
        raw_text = json.dumps(raw, ensure_ascii=False)

    if kind == "json":
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON content: {e}") from e
        else:
            parsed = raw
    else:
        parsed = raw_text

    logger.debug("staged %s file %s (%d chars)", kind, path, len(raw_text))
    return StagedFile(path=path, kind=kind, parsed_content=parsed, raw_content=raw_text)


def render_upload(staged: StagedFile) -> Tuple[str, bytes, str]:
    """Build the multipart ``(filename, content, mime)`` triple for an upload."""
    if staged.kind == "json":
        parsed = staged.parsed_content
        body = parsed if isinstance(parsed, str) else json.dumps(parsed, indent=2, ensure_ascii=False)
    else:
        body = staged.raw_content
    return os.path.basename(staged.path), body.encode("utf-8"), MIME_TYPES[staged.kind]
