"""Pytest configuration and shared fixtures."""

import json
from typing import Callable, List

import httpx
import pytest

from liblib.gateway import SignedGateway
from liblib.signing import Credentials

API_BASE = "https://api.test"


class RecordingTransport:
    """Handler for httpx.MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.handler(request)

    def json_bodies(self) -> list:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.headers.get("content-type") == "application/json"
        ]


@pytest.fixture
def envelope():
    def _envelope(data, code: int = 0, msg: str = "ok") -> dict:
        return {"code": code, "msg": msg, "data": data}

    return _envelope


@pytest.fixture
def credentials():
    return Credentials("test-access-key", "test-secret")


@pytest.fixture
def make_http():
    def _make(handler):
        recorder = RecordingTransport(handler)
        return httpx.AsyncClient(transport=httpx.MockTransport(recorder)), recorder

    return _make


@pytest.fixture
def make_gateway(credentials, make_http):
    def _make(handler, proxy_url=None):
        client, recorder = make_http(handler)
        gateway = SignedGateway(client, credentials, api_base=API_BASE, proxy_url=proxy_url)
        return gateway, recorder

    return _make
