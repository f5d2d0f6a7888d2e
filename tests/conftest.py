from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from azureassistant import AzureAssistantClient, ClientConfig

ENDPOINT = "https://example.openai.azure.com"


class FakeAzure:
    """In-memory stand-in for the Assistants REST API, used as an httpx MockTransport handler."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str]] = []
        self.requests: List[httpx.Request] = []
        self.run_statuses: List[str] = ["completed"]
        self.last_error: Optional[Dict[str, Any]] = None
        self.reply = "Hello there"
        # When set, returned verbatim as the message content
        self.reply_content: Any = None
        self.failures: Dict[str, Tuple[int, str]] = {}
        self.raises: Dict[str, Exception] = {}
        # route -> 1-based call number that answers 500
        self.fail_on_call: Dict[str, int] = {}
        self.polls = 0
        self._ids = 0

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}_{self._ids}"

    def count(self, route: str) -> int:
        return sum(1 for r, _ in self.calls if r == route)

    def bodies(self, route: str) -> List[Dict[str, Any]]:
        return [
            json.loads(req.content)
            for (r, _), req in zip(self.calls, self.requests)
            if r == route
        ]

    def raw(self, route: str) -> List[httpx.Request]:
        return [req for (r, _), req in zip(self.calls, self.requests) if r == route]

    @staticmethod
    def route(method: str, path: str) -> str:
        parts = path.strip("/").split("/")[1:]
        if parts[0] == "files":
            if len(parts) == 1:
                return "upload" if method == "POST" else "list_files"
            return "delete_file"
        if parts[0] == "assistants":
            return "create_assistant" if len(parts) == 1 else "delete_assistant"
        if parts[0] == "threads":
            if len(parts) == 1:
                return "create_thread"
            if parts[2] == "messages":
                return "add_message" if method == "POST" else "list_messages"
            if len(parts) == 3:
                return "create_run"
            return "get_run"
        raise AssertionError(f"unexpected path {path}")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        route = self.route(request.method, request.url.path)
        self.calls.append((route, request.url.path))
        self.requests.append(request)

        if route in self.raises:
            raise self.raises[route]
        if self.fail_on_call.get(route) == self.count(route):
            return httpx.Response(500, text="transient failure")
        if route in self.failures:
            status, body = self.failures[route]
            return httpx.Response(status, text=body)

        if route == "upload":
            return httpx.Response(200, json={"id": self._next_id("file"), "object": "file"})
        if route == "list_files":
            return httpx.Response(200, json={"data": [], "object": "list"})
        if route in ("delete_file", "delete_assistant"):
            return httpx.Response(200, json={"deleted": True})
        if route == "create_assistant":
            return httpx.Response(200, json={"id": self._next_id("asst")})
        if route == "create_thread":
            return httpx.Response(200, json={"id": self._next_id("thread")})
        if route == "add_message":
            return httpx.Response(200, json={"id": self._next_id("msg")})
        if route == "create_run":
            return httpx.Response(200, json={"id": self._next_id("run"), "status": "queued"})
        if route == "get_run":
            status = self.run_statuses[min(self.polls, len(self.run_statuses) - 1)]
            self.polls += 1
            body: Dict[str, Any] = {"id": request.url.path.rsplit("/", 1)[-1], "status": status}
            if self.last_error is not None:
                body["last_error"] = self.last_error
            return httpx.Response(200, json=body)
        if route == "list_messages":
            content = self.reply_content
            if content is None:
                content = [{"type": "text", "text": {"value": self.reply, "annotations": []}}]
            return httpx.Response(200, json={"data": [{"role": "assistant", "content": content}]})
        raise AssertionError(route)


@pytest.fixture
def fake() -> FakeAzure:
    return FakeAzure()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        endpoint=ENDPOINT + "/",
        api_key="secret",
        deployment_name="gpt-4o",
        poll_interval=0,
    )


@pytest.fixture
def client(fake: FakeAzure, config: ClientConfig) -> AzureAssistantClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return AzureAssistantClient(config, http_client=http)
