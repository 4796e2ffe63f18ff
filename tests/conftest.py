from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from sketricgen import SketricGenClient

API_KEY = "test-api-key"
BASE_URL = "https://api.test"
UPLOAD_INIT_URL = "https://uploads.test/init"
UPLOAD_COMPLETE_URL = "https://uploads.test/complete"
STORAGE_URL = "https://storage.test/bucket"
RUN_WORKFLOW_URL = f"{BASE_URL}/api/v1/run-workflow"

CHAT_RESPONSE = {
    "agent_id": "agent-1",
    "user_id": "user-1",
    "conversation_id": "conv-1",
    "response": "Hi there!",
    "owner": "owner-1",
    "error": False,
}

STREAM_BODY = (
    b'event: RUN_STARTED\ndata: {"type": "RUN_STARTED", "run_id": "r1"}\nid: 1\n\n'
    b'event: TEXT_MESSAGE_CONTENT\ndata: {"type": "TEXT_MESSAGE_CONTENT", "delta": "Hello"}\n\n'
    b'event: TEXT_MESSAGE_CONTENT\ndata: {"type": "TEXT_MESSAGE_CONTENT", "delta": " world"}\n\n'
    b'event: RUN_FINISHED\ndata: {"type": "RUN_FINISHED", "run_id": "r1"}\n\n'
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep SKETRICGEN_* variables of the host out of the tests."""
    for name in (
        "SKETRICGEN_API_KEY",
        "SKETRICGEN_BASE_URL",
        "SKETRICGEN_UPLOAD_INIT_URL",
        "SKETRICGEN_UPLOAD_COMPLETE_URL",
        "SKETRICGEN_TIMEOUT",
        "SKETRICGEN_UPLOAD_TIMEOUT",
        "SKETRICGEN_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeBackend:
    """In-memory stand-in for the workflow API, upload API and storage bucket.

    Every request is recorded. Responses can be overridden per URL through
    ``overrides``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.overrides: dict[str, httpx.Response] = {}
        self.chat_response: dict[str, Any] = dict(CHAT_RESPONSE)
        self.stream_body: bytes = STREAM_BODY
        self.grant_fields: dict[str, str] | None = None
        self.max_file_bytes = 20 * 1024 * 1024
        self._upload_count = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.overrides:
            return self.overrides[url]

        if url == UPLOAD_INIT_URL:
            self._upload_count += 1
            file_id = f"file-{self._upload_count}"
            fields = self.grant_fields or {
                "key": f"uploads/{file_id}",
                "policy": "policy-doc",
                "x-amz-signature": "signature",
            }
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "file_id": file_id,
                    "content_type": "application/pdf",
                    "upload": {
                        "url": STORAGE_URL,
                        "fields": fields,
                        "expires_at": "2030-01-01T00:00:00Z",
                        "max_file_bytes": self.max_file_bytes,
                    },
                },
            )
        if url == STORAGE_URL:
            return httpx.Response(204)
        if url == UPLOAD_COMPLETE_URL:
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "file_id": body["file_id"],
                    "file_size_bytes": 8,
                    "content_type": "application/pdf",
                    "file_name": body["file_name"],
                    "created_at": "2026-01-01T00:00:00Z",
                    "url": f"https://cdn.test/{body['file_id']}",
                },
            )
        if url == RUN_WORKFLOW_URL:
            body = json.loads(request.content)
            if body["stream"]:
                return httpx.Response(
                    200,
                    headers={"content-type": "text/event-stream"},
                    content=self.stream_body,
                )
            return httpx.Response(200, json=self.chat_response)
        return httpx.Response(404, json={"detail": "Not found"})

    def urls(self) -> list[str]:
        return [str(request.url) for request in self.requests]

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [request for request in self.requests if str(request.url) == url]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


def make_client(handler: Any, **options: Any) -> SketricGenClient:
    """Client pointed at the fake endpoints, with all traffic going to ``handler``."""
    return SketricGenClient(
        api_key=API_KEY,
        base_url=BASE_URL,
        upload_init_url=UPLOAD_INIT_URL,
        upload_complete_url=UPLOAD_COMPLETE_URL,
        transport=httpx.MockTransport(handler),
        **options,
    )


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)
