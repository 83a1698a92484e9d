"""Endpoint tests for /raw, /processed, /stats and /dash."""

from __future__ import annotations

from datetime import datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from expvardash.api.dashboard import render_dashboard, router as dashboard_router
from expvardash.api.deps import get_app_settings, get_expvar_client, get_history
from expvardash.api.stats import router as stats_router
from expvardash.config import Settings
from expvardash.history.ring import RingHistory
from expvardash.models.sample import SampleRecord
from expvardash.workers.poller import Poller


@pytest.fixture
def history():
    return RingHistory(4)


@pytest.fixture
def stats_app(expvar_client, history):
    app = FastAPI()
    app.dependency_overrides[get_expvar_client] = lambda: expvar_client
    app.dependency_overrides[get_history] = lambda: history
    app.dependency_overrides[get_app_settings] = lambda: Settings(port=9191, dashboard_refresh_ms=2000)
    app.include_router(stats_router)
    app.include_router(dashboard_router)
    return app


@pytest_asyncio.fixture
async def client(stats_app):
    async with AsyncClient(transport=ASGITransport(app=stats_app), base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_raw_passes_body_through(client, fake_target):
    fake_target.body_override = b'{"Cmdline":["x"],"Extra":{"a":1}}'
    resp = await client.get("/raw")
    assert resp.status_code == 200
    assert resp.content == b'{"Cmdline":["x"],"Extra":{"a":1}}'


@pytest.mark.asyncio
async def test_processed_renders_summary(client):
    resp = await client.get("/processed")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == (
        "cmd: app\n"
        "alloc: 100\n"
        "sys: 200\n"
        "heap alloc: 50\n"
        "heap in use: 60\n"
        "GC CPU use: 0.01\n"
        "GC pause time: 1000\n"
    )


@pytest.mark.asyncio
async def test_processed_fetches_fresh_each_time(client, fake_target, debug_vars):
    await client.get("/processed")
    fake_target.payload = debug_vars(alloc=4242)
    resp = await client.get("/processed")
    assert "alloc: 4242\n" in resp.text
    assert len(fake_target.requests) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/raw", "/processed"])
async def test_unreachable_target_returns_502_plaintext(client, fake_target, path):
    fake_target.failures_remaining = 1
    resp = await client.get(path)
    assert resp.status_code == 502
    assert resp.text.startswith("Error reading http://monitored.local:8123/debug/vars\n")


@pytest.mark.asyncio
async def test_timeout_returns_504(client, fake_target):
    fake_target.failures_remaining = 1
    fake_target.failure = httpx.ConnectTimeout
    resp = await client.get("/processed")
    assert resp.status_code == 504


@pytest.mark.asyncio
async def test_processed_malformed_returns_502(client, fake_target):
    fake_target.body_override = b'{"Cmdline": []}'
    resp = await client.get("/processed")
    assert resp.status_code == 502
    assert "Error reading" in resp.text


@pytest.mark.asyncio
async def test_stats_length_is_always_capacity(client, history):
    resp = await client.get("/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 4
    assert all(entry["sample_time"] is None for entry in data)

    start = datetime(2026, 5, 1, 8, 0, 0)
    for i in range(9):
        history.append(SampleRecord(sample_time=start + timedelta(seconds=i), command="app", alloc_bytes=i))

    data = (await client.get("/stats")).json()
    assert len(data) == 4
    assert [entry["alloc_bytes"] for entry in data] == [5, 6, 7, 8]
    assert data[0]["sample_time"] == (start + timedelta(seconds=5)).isoformat()
    assert data[0]["command"] == "app"


@pytest.mark.asyncio
async def test_dash_embeds_port_and_polls_processed(client):
    resp = await client.get("/dash")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert 'var expvarPORT = "9191";' in resp.text
    assert "/processed" in resp.text
    assert "var refreshMs = 2000;" in resp.text


def test_render_dashboard_is_plain_html():
    page = render_dashboard(8080, 500)
    assert page.startswith("<!doctype html>")
    assert "$" not in page


@pytest.mark.asyncio
async def test_non_finite_sample_never_reaches_history(client, fake_target, expvar_client, history):
    fake_target.body_override = b'{"Cmdline": ["app"], "Memstats": {"Alloc": 1, "GCCPUFraction": NaN}}'

    resp = await client.get("/processed")
    assert resp.status_code == 502

    assert await Poller(expvar_client, history, interval=1.0).poll_once() is None
    assert all(record.is_placeholder for record in history.snapshot())

    resp = await client.get("/stats")
    assert resp.status_code == 200
    assert len(resp.json()) == 4


@pytest.mark.asyncio
async def test_deeply_nested_body_returns_502(client, fake_target):
    fake_target.body_override = b'{"a":' * 100_000 + b"1" + b"}" * 100_000
    resp = await client.get("/processed")
    assert resp.status_code == 502
    assert "invalid JSON" in resp.text
