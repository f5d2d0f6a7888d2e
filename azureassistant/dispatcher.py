from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Type

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from .cleanup import CleanupQueue
from .config_schemas import ClientConfig
from .conversation import ConversationSession
from .errors import (
    AssistantError,
    RemoteError,
    RunError,
    RunTimeoutError,
    ThreadError,
    UploadError,
    ValidationError,
)
from .messages import build_thread_messages, has_user_message, system_instructions
from .openai_client import AssistantsAPI
from .response import CompletionResult, build_result
from .staging import UploadedFile, render_upload

logger = logging.getLogger(__name__)

RUN_COMPLETED = "completed"
RUN_FAILED_STATES = ("failed", "cancelled", "expired")


def _require_id(payload: Mapping[str, Any], error: Type[RemoteError], what: str) -> str:
    rid = payload.get("id")
    if not rid:
        raise error(f"{what} returned no id", None, str(payload))
    return str(rid)


def _still_running(run: Mapping[str, Any]) -> bool:
    return run.get("status") != RUN_COMPLETED


class RunDispatcher:
    """Drives one conversation turn against the Assistants API.

    ``run(session)`` uploads pending files, creates or reuses the assistant and
    thread, starts a run, polls it to completion and stores the latest reply
    on the session. Steps are strictly sequential; any failure before the
    reply is stored leaves the previous result untouched.
    """

    def __init__(self, api: AssistantsAPI, config: ClientConfig, cleanup: CleanupQueue) -> None:
        self.api = api
        self.config = config
        self.cleanup = cleanup

    async def run(self, session: ConversationSession) -> CompletionResult:
        if session.is_empty():
            raise ValidationError(
                "No messages or files to send. Use add_message() or add_file() first."
            )
        if session.thread_id and session.pending_files and not has_user_message(session.pending_messages):
            # Files can only join an existing thread attached to a new user message
            raise ValidationError(
                "New files need a new user message to attach to. Use add_message() first."
            )

        uploaded = await self._upload_files(session)
        assistant_id = await self._ensure_assistant(session)
        thread_id = await self._ensure_thread(session, uploaded)

        created = await self.api.create_run(thread_id, assistant_id)
        run_id = _require_id(created, RunError, "Run creation")
        logger.debug("started run %s on thread %s", run_id, thread_id)
        run = await self._wait_for_run(thread_id, run_id)

        message = await self.api.latest_message(thread_id)
        result = build_result(run, message, self.config.deployment_name)
        session.last_result = result

        for f in uploaded:
            self.cleanup.schedule(
                lambda fid=f.remote_id: self.api.delete_file(fid),
                f"file {f.remote_id} ({f.local_path})",
            )
        return result

    async def _upload_files(self, session: ConversationSession) -> List[UploadedFile]:
        # Sequential on purpose: files reach the remote side in staging order
        uploaded: List[UploadedFile] = []
        for staged in session.pending_files:
            filename, content, mime = render_upload(staged)
            data = await self.api.upload_file(filename, content, mime)
            remote_id = _require_id(data, UploadError, "File upload")
            logger.debug("uploaded %s as %s", staged.path, remote_id)
            uploaded.append(UploadedFile(remote_id=remote_id, local_path=staged.path, kind=staged.kind))
        return uploaded

    async def _ensure_assistant(self, session: ConversationSession) -> str:
        if session.assistant_id:
            return session.assistant_id
        instructions = system_instructions(session.messages, self.config.init_msg)
        data = await self.api.create_assistant(
            instructions=instructions,
            temperature=session.options.get("temperature"),
            top_p=session.options.get("top_p"),
        )
        session.assistant_id = _require_id(data, AssistantError, "Assistant creation")
        logger.debug("created assistant %s", session.assistant_id)
        return session.assistant_id

    async def _ensure_thread(self, session: ConversationSession, uploaded: List[UploadedFile]) -> str:
        file_ids = [f.remote_id for f in uploaded]
        pending = session.pending_messages
        if file_ids and not has_user_message(pending):
            logger.warning(
                "%d uploaded file(s) have no user message to ride on and will not be attached",
                len(file_ids),
            )

        if not session.thread_id:
            data = await self.api.create_thread(build_thread_messages(session.messages, file_ids))
            session.thread_id = _require_id(data, ThreadError, "Thread creation")
            logger.debug("created thread %s", session.thread_id)
        else:
            attached = not file_ids
            for message in pending:
                for item in build_thread_messages([message], None if attached else file_ids):
                    await self.api.add_thread_message(session.thread_id, item)
                    if "attachments" in item:
                        attached = True
                        session.sent_files = len(session.files)
                # Advance per message so a failed append never re-posts earlier ones
                session.sent_messages += 1

        session.sent_messages = len(session.messages)
        session.sent_files = len(session.files)
        return session.thread_id

    async def _check_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        run = await self.api.get_run(thread_id, run_id)
        status = run.get("status")
        if status in RUN_FAILED_STATES:
            reason = (run.get("last_error") or {}).get("message") or "Unknown error"
            raise RunError(f"Run {status}: {reason}", None, str(run), run_status=status)
        return run

    async def _wait_for_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        # Only non-terminal statuses are retried; exceptions end the loop at once
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_poll_attempts),
            wait=wait_fixed(self.config.poll_interval),
            retry=retry_if_result(_still_running),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        try:
            return await retrying(self._check_run, thread_id, run_id)
        except RetryError as e:
            ceiling = self.config.max_poll_attempts * self.config.poll_interval
            raise RunTimeoutError(
                f"Run {run_id} timed out after {self.config.max_poll_attempts} status checks "
                f"({ceiling:g}s)"
            ) from e
