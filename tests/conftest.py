from typing import Callable, List

import httpx
import pytest

from fr24_client import FR24Client

API_KEY = "test-api-key"


class RecordingHandler:
    """MockTransport handler that remembers every request it served."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def make_client():
    def _make(respond):
        handler = RecordingHandler(respond)
        client = FR24Client(API_KEY, transport=httpx.MockTransport(handler))
        return client, handler

    return _make
