from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

import httpx

from .config_schemas import ClientConfig
from .errors import (
    AssistantError,
    RemoteError,
    RequestTimeoutError,
    RunError,
    ThreadError,
    UploadError,
)

logger = logging.getLogger(__name__)


class AssistantsAPI:
    """Thin wrapper over the Azure OpenAI Assistants REST endpoints.

    Every method performs exactly one HTTP request through the injected
    ``httpx.AsyncClient`` and returns the decoded JSON body. Non-success
    responses raise the RemoteError subclass matching the call.
    """

    def __init__(self, config: ClientConfig, http: httpx.AsyncClient) -> None:
        self.config = config
        self.http = http

    def _url(self, path: str) -> str:
        return f"{self.config.endpoint}/openai/{path}"

    def _headers(self, *, json_body: bool = False) -> Dict[str, str]:
        headers = {"api-key": self.config.api_key}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error: Type[RemoteError],
        what: str,
        json: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {"api-version": self.config.api_version}
        if params:
            query.update(params)
        request = self.http.build_request(
            method,
            self._url(path),
            params=query,
            headers=self._headers(json_body=json is not None),
            json=json,
            files=files,
            data=data,
        )
        logger.debug("%s %s", method, request.url.path)
        try:
            r = await self.http.send(request)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Request timeout after {self.config.timeout}ms. "
                "Try increasing the timeout or check your connection."
            ) from e
        if not r.is_success:
            body = r.text
            raise error(f"{what} failed ({r.status_code}): {body}", r.status_code, body)
        if not r.content:
            return {}
        return r.json()

    async def upload_file(self, filename: str, content: bytes, mime: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "files",
            error=UploadError,
            what="File upload",
            files={"file": (filename, content, mime)},
            data={"purpose": "assistants"},
        )

    async def delete_file(self, file_id: str) -> Dict[str, Any]:
        return await self._request(
            "DELETE", f"files/{file_id}", error=RemoteError, what="File deletion"
        )

    async def list_files(self) -> Dict[str, Any]:
        return await self._request("GET", "files", error=RemoteError, what="List files")

    async def create_assistant(
        self,
        *,
        instructions: str,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.config.deployment_name,
            "name": self.config.assistant_name,
            "instructions": instructions,
            "tools": [{"type": "code_interpreter"}],
            "temperature": temperature,
        }
        if top_p is not None:
            body["top_p"] = top_p
        return await self._request(
            "POST", "assistants", error=AssistantError, what="Assistant creation", json=body
        )

    async def delete_assistant(self, assistant_id: str) -> Dict[str, Any]:
        return await self._request(
            "DELETE", f"assistants/{assistant_id}", error=RemoteError, what="Assistant deletion"
        )

    async def create_thread(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._request(
            "POST", "threads", error=ThreadError, what="Thread creation", json={"messages": messages}
        )

    async def add_thread_message(self, thread_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"threads/{thread_id}/messages",
            error=ThreadError,
            what="Thread message creation",
            json=message,
        )

    async def create_run(self, thread_id: str, assistant_id: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"threads/{thread_id}/runs",
            error=RunError,
            what="Run creation",
            json={"assistant_id": assistant_id},
        )

    async def get_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET", f"threads/{thread_id}/runs/{run_id}", error=RunError, what="Status check"
        )

    async def latest_message(self, thread_id: str) -> Optional[Dict[str, Any]]:
        payload = await self._request(
            "GET",
            f"threads/{thread_id}/messages",
            error=RemoteError,
            what="Get messages",
            params={"limit": 1},
        )
        data = payload.get("data") or []
        return data[0] if data else None
