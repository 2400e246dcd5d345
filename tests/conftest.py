"""Test fixtures — Jira clients wired to an in-memory httpx transport.

Learn: httpx.MockTransport routes every request to a handler function,
so the full request/response path runs without a network. The Recorder
wraps the handler to count and keep every request it sees.
"""

import json

import httpx
import pytest
import pytest_asyncio
import structlog

from jira_comments.client import JiraClient

BASE_URL = "https://jira.example.com"
TOKEN = "dXNlcjpzZWNyZXQ="


def created(request: httpx.Request) -> httpx.Response:
    """Default handler: Jira's 201 Created with a comment resource."""
    body = json.loads(request.content)
    return httpx.Response(
        201,
        json={
            "id": "10001",
            "self": f"{request.url}/10001",
            "body": body["body"],
            "created": "2024-05-01T10:00:00.000+0000",
        },
    )


class Recorder:
    """Counts and stores every request passed to the wrapped handler."""

    def __init__(self, handler=created):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request):
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture()
def recorder():
    return Recorder()


@pytest_asyncio.fixture()
async def make_client():
    """Factory for clients bound to a Recorder; closes them after the test."""
    clients: list[JiraClient] = []

    def _make(recorder: Recorder, base_url: str = BASE_URL, **kwargs) -> JiraClient:
        client = JiraClient(TOKEN, base_url, transport=recorder.transport(), **kwargs)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
