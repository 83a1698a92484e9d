"""Client for a target's /debug/vars introspection endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from expvardash.ingestion.errors import (
    MalformedSnapshotError,
    TargetTimeoutError,
    TargetUnavailableError,
)
from expvardash.models.sample import RawTargetSnapshot

DEBUG_VARS_PATH = "/debug/vars"


@dataclass(frozen=True)
class RawResponse:
    """Body of a /debug/vars response, kept byte-for-byte."""

    content: bytes
    media_type: str


class ExpvarClient:
    """Fetches and parses snapshots from one monitored target.

    Each call opens its own short-lived ``httpx.AsyncClient`` bounded by
    ``timeout`` so a hung target can stall neither the poller nor a handler.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{DEBUG_VARS_PATH}"

    async def fetch_raw(self) -> RawResponse:
        """GET the target's document without interpreting it."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TargetTimeoutError(self.url, f"timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise TargetUnavailableError(self.url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise TargetUnavailableError(self.url, str(exc) or exc.__class__.__name__) from exc

        media_type = resp.headers.get("content-type", "application/json")
        return RawResponse(content=resp.content, media_type=media_type)

    async def fetch_snapshot(self) -> RawTargetSnapshot:
        """GET and validate the target's document."""
        raw = await self.fetch_raw()
        return parse_snapshot(raw.content, url=self.url)


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def parse_snapshot(body: bytes | str, url: str = DEBUG_VARS_PATH) -> RawTargetSnapshot:
    """Parse a /debug/vars body into a :class:`RawTargetSnapshot`."""
    try:
        data = json.loads(body, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors; deep nesting overflows the decoder.
        raise MalformedSnapshotError(url, f"invalid JSON: {exc.__class__.__name__}: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedSnapshotError(url, f"expected a JSON object, got {type(data).__name__}")

    try:
        return RawTargetSnapshot.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedSnapshotError(url, f"invalid fields: {fields}") from exc
