"""Shared test fixtures for expvardash tests."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from expvardash.ingestion.expvar import ExpvarClient


def make_debug_vars(
    cmd: str = "app",
    alloc: int = 100,
    sys_bytes: int = 200,
    heap_alloc: int = 50,
    heap_inuse: int = 60,
    gc_cpu_fraction: float = 0.01,
    num_gc: int = 5,
    last_pause: int = 1000,
) -> dict:
    """A /debug/vars document with the most recent pause at (num_gc + 255) % 256."""
    pause_ns = [0] * 256
    pause_ns[(num_gc + 255) % 256] = last_pause
    return {
        "Cmdline": [cmd, "-flag"],
        "Memstats": {
            "Alloc": alloc,
            "Sys": sys_bytes,
            "HeapAlloc": heap_alloc,
            "HeapInuse": heap_inuse,
            "GCCPUFraction": gc_cpu_fraction,
            "NumGC": num_gc,
            "PauseNs": pause_ns,
            "Mallocs": 12345,
        },
        "memstats_extra": {"ignored": True},
    }


class FakeTarget:
    """Scriptable stand-in for the monitored process, served via httpx.MockTransport."""

    def __init__(self, payload: dict | None = None) -> None:
        self.payload = payload or make_debug_vars()
        self.failures_remaining = 0
        self.failure: type[httpx.TransportError] = httpx.ConnectError
        self.body_override: bytes | None = None
        self.status_code = 200
        self.requests: list[httpx.Request] = []
        self.delay = 0.0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
            raise self.failure("target unreachable", request=request)
        if self.body_override is not None:
            return httpx.Response(self.status_code, content=self.body_override)
        return httpx.Response(
            self.status_code,
            content=json.dumps(self.payload).encode(),
            headers={"content-type": "application/json; charset=utf-8"},
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def debug_vars():
    return make_debug_vars


@pytest.fixture
def fake_target() -> FakeTarget:
    return FakeTarget()


@pytest.fixture
def expvar_client(fake_target: FakeTarget) -> ExpvarClient:
    return ExpvarClient("monitored.local", 8123, timeout=1.0, transport=fake_target.transport())
