"""Shared fixtures: an in-process fake web served through httpx.MockTransport."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest

ResponseFactory = Callable[[httpx.Request], httpx.Response]
Route = Union[ResponseFactory, Exception]


def html(body: str, status: int = 200, headers: Optional[dict] = None) -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, html=body, headers=headers)

    return factory


def content(
    body: bytes = b"", status: int = 200, content_type: Optional[str] = None
) -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        headers = {"content-type": content_type} if content_type else {}
        return httpx.Response(status, content=body, headers=headers)

    return factory


def redirect(location: str, status: int = 301) -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers={"location": location})

    return factory


def status(code: int) -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code)

    return factory


def slow(delay: float, factory: ResponseFactory) -> Callable:
    async def wrapper(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(delay)
        return factory(request)

    return wrapper


class UnreadableStream(httpx.AsyncByteStream):
    """A body that fails the test if anything reads it."""

    async def __aiter__(self):
        raise AssertionError("response body should not be read")
        yield b""  # pragma: no cover


def unreadable_html() -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "text/html"},
            stream=UnreadableStream(),
        )

    return factory



class BrokenStream(httpx.AsyncByteStream):
    """A body whose connection drops after the first chunk."""

    async def __aiter__(self):
        yield b"<html><body>"
        raise httpx.ReadError("connection reset")


def broken_html() -> ResponseFactory:
    def factory(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "text/html"},
            stream=BrokenStream(),
        )

    return factory

@dataclass
class FakeWeb:
    """Routes URLs to queued responses; the last queued response repeats.

    Unknown URLs fail like an unreachable host.
    """

    routes: Dict[str, List[Route]]
    requests: List[httpx.Request]

    def add(self, url: str, *responses: Route) -> "FakeWeb":
        self.routes.setdefault(url, []).extend(responses)
        return self

    def hits(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(str(request.url))
        if not queue:
            raise httpx.ConnectError("Name or service not known", request=request)

        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, Exception):
            raise route

        response = route(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            follow_redirects=False,
        )


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb(routes={}, requests=[])


def no_sleep(retries: int) -> float:
    return 0
