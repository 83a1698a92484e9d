"""Stats endpoints — raw passthrough, processed summary and sampled history."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from expvardash.api.deps import get_expvar_client, get_history
from expvardash.history.ring import RingHistory
from expvardash.ingestion.errors import TargetError, TargetTimeoutError
from expvardash.ingestion.expvar import ExpvarClient
from expvardash.models.sample import RawTargetSnapshot

logger = logging.getLogger("expvardash.api.stats")
router = APIRouter(tags=["stats"])


def _error_response(exc: TargetError) -> PlainTextResponse:
    status_code = 504 if isinstance(exc, TargetTimeoutError) else 502
    return PlainTextResponse(f"Error reading {exc.url}\n {exc.detail}", status_code=status_code)


def render_processed(snapshot: RawTargetSnapshot) -> str:
    """Fixed plaintext summary of one snapshot."""
    mem = snapshot.memstats
    return (
        f"cmd: {snapshot.command}\n"
        f"alloc: {mem.alloc}\n"
        f"sys: {mem.sys}\n"
        f"heap alloc: {mem.heap_alloc}\n"
        f"heap in use: {mem.heap_inuse}\n"
        f"GC CPU use: {mem.gc_cpu_fraction}\n"
        f"GC pause time: {mem.last_pause_ns}\n"
    )


@router.get("/raw")
async def raw_vars(client: ExpvarClient = Depends(get_expvar_client)):
    """The target's /debug/vars document, verbatim."""
    try:
        raw = await client.fetch_raw()
    except TargetError as exc:
        logger.warning(f"Raw fetch failed: {exc}")
        return _error_response(exc)
    return Response(content=raw.content, media_type=raw.media_type)


@router.get("/processed")
async def processed_vars(client: ExpvarClient = Depends(get_expvar_client)):
    """Live summary from a fresh fetch, independent of the poller's history."""
    try:
        snapshot = await client.fetch_snapshot()
    except TargetError as exc:
        logger.warning(f"Processed fetch failed: {exc}")
        return _error_response(exc)
    return PlainTextResponse(render_processed(snapshot))


@router.get("/stats")
async def sampled_stats(history: RingHistory = Depends(get_history)):
    """Retained samples, oldest first. Always exactly ``capacity`` entries."""
    return JSONResponse([record.to_dict() for record in history.snapshot()])
