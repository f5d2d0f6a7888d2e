from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Set

from .conversation import ConversationSession
from .openai_client import AssistantsAPI

logger = logging.getLogger(__name__)


class CleanupQueue:
    """Detached background deletes.

    Scheduled work runs as its own asyncio task. Errors are logged and never
    reach the code that scheduled them.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def schedule(self, factory: Callable[[], Awaitable[Any]], label: str) -> asyncio.Task:
        async def _runner() -> None:
            try:
                await factory()
                logger.debug("cleanup done: %s", label)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("cleanup failed for %s: %s", label, e)

        task = asyncio.get_running_loop().create_task(_runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def delete_assistant(api: AssistantsAPI, session: ConversationSession) -> None:
    """Delete the session's assistant, if any, and forget its thread."""
    if not session.assistant_id:
        return
    await api.delete_assistant(session.assistant_id)
    logger.debug("deleted assistant %s", session.assistant_id)
    session.forget_remote()
