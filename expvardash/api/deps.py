"""Request dependencies resolving the objects owned by the running application."""

from __future__ import annotations

from fastapi import Request

from expvardash.config import Settings
from expvardash.history.ring import RingHistory
from expvardash.ingestion.expvar import ExpvarClient
from expvardash.observability.metrics import InMemoryMetrics
from expvardash.workers.poller import Poller


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_history(request: Request) -> RingHistory:
    return request.app.state.history


def get_expvar_client(request: Request) -> ExpvarClient:
    return request.app.state.expvar_client


def get_poller(request: Request) -> Poller:
    return request.app.state.poller


def get_metrics(request: Request) -> InMemoryMetrics:
    return request.app.state.metrics
