from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import httpx

from .cleanup import CleanupQueue, delete_assistant
from .config_schemas import ClientConfig, ConversationState, FileConfig, GenerationOptions
from .conversation import ConversationSession
from .dispatcher import RunDispatcher
from .openai_client import AssistantsAPI
from .response import CompletionResult, persist_result, require_result

logger = logging.getLogger(__name__)


class AzureAssistantClient:
    """One conversation with an Azure OpenAI assistant.

    Build up context with ``add_message``/``add_file``/``set_options``, then
    ``await fetch()`` to run it and read the answer with ``response()``.
    Mutators return ``self`` so calls can be chained::

        async with AzureAssistantClient(endpoint=..., api_key=..., deployment_name=...) as ai:
            ai.add_message({"role": "user", "content": "Summarise the file"})
            ai.add_file({"file_path": "report.json"})
            await ai.fetch()
            print(ai.response())

    An instance is not safe for concurrent ``fetch()`` calls; use one
    instance per conversation.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        **overrides: Any,
    ) -> None:
        if config is None:
            config = ClientConfig(**overrides)
        elif overrides:
            raise TypeError("Pass either a ClientConfig or keyword settings, not both")
        self.config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self.api = AssistantsAPI(config, self._http)
        self.session = ConversationSession()
        self.cleanup = CleanupQueue()
        self.dispatcher = RunDispatcher(self.api, config, self.cleanup)

    async def __aenter__(self) -> "AzureAssistantClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.cleanup.drain()
        if self._owns_http:
            await self._http.aclose()

    # Conversation state

    def add_message(
        self, messages: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]
    ) -> "AzureAssistantClient":
        self.session.add_messages(messages)
        return self

    def add_file(self, file_config: FileConfig) -> "AzureAssistantClient":
        self.session.add_file(file_config)
        return self

    def set_options(self, options: GenerationOptions) -> "AzureAssistantClient":
        self.session.set_options(options)
        return self

    def clear(self) -> "AzureAssistantClient":
        """Forget messages, files, remote ids and the last response.

        Generation options are kept. Remote resources are not deleted; call
        ``delete_assistant()`` first if they should go too.
        """
        self.session.clear()
        return self

    def get_state(self) -> ConversationState:
        return self.session.snapshot()

    @property
    def assistant_id(self) -> Optional[str]:
        return self.session.assistant_id

    @property
    def thread_id(self) -> Optional[str]:
        return self.session.thread_id

    # Running

    async def fetch(self) -> "AzureAssistantClient":
        result = await self.dispatcher.run(self.session)
        logger.debug("run %s completed", result.run_id)
        return self

    run = fetch

    # Results

    def response(self) -> str:
        return require_result(self.session.last_result).reply.content

    reply = response

    def raw_response(self) -> CompletionResult:
        return require_result(self.session.last_result)

    def save_response(self, save_config: Mapping[str, Any]) -> "AzureAssistantClient":
        persist_result(
            self.session.last_result,
            save_config.get("file_name"),
            save_config.get("file_type") or "json",
        )
        return self

    # Remote resources

    async def delete_file(self, file_id: str) -> Dict[str, Any]:
        return await self.api.delete_file(file_id)

    async def delete_assistant(self) -> None:
        await delete_assistant(self.api, self.session)

    async def list_files(self) -> Dict[str, Any]:
        return await self.api.list_files()
