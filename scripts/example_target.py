#!/usr/bin/env python3
"""Demo monitored process for expvardash.

Allocates memory on an interval, releases it and forces a collection once a
total is reached, and publishes /debug/vars in the shape expvardash reads:
``Cmdline`` plus a ``Memstats`` object built from this interpreter's own
tracemalloc and garbage-collector statistics.

    python scripts/example_target.py --port 8123 --delay 0.5 --amount 100000
"""

from __future__ import annotations

import argparse
import asyncio
import gc
import logging
import sys
import time
import tracemalloc
from contextlib import asynccontextmanager
from threading import Lock

import uvicorn
from fastapi import FastAPI

PAUSE_RING_SIZE = 256

logger = logging.getLogger("expvardash.example_target")


class GCStats:
    """Collector pause history maintained from ``gc.callbacks``."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._started_ns = time.process_time_ns()
        self._phase_start: int | None = None
        self.num_gc = 0
        self.total_pause_ns = 0
        self.pause_ns = [0] * PAUSE_RING_SIZE

    def callback(self, phase: str, info: dict) -> None:
        now = time.perf_counter_ns()
        if phase == "start":
            self._phase_start = now
            return
        if self._phase_start is None:
            return
        pause = now - self._phase_start
        self._phase_start = None
        with self._lock:
            self.pause_ns[self.num_gc % PAUSE_RING_SIZE] = pause
            self.num_gc += 1
            self.total_pause_ns += pause

    def cpu_fraction(self) -> float:
        elapsed = max(time.process_time_ns() - self._started_ns, 1)
        return min(self.total_pause_ns / elapsed, 1.0)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "NumGC": self.num_gc,
                "PauseNs": list(self.pause_ns),
                "PauseTotalNs": self.total_pause_ns,
                "GCCPUFraction": self.cpu_fraction(),
            }


def build_app(delay: float, amount: int, total: int) -> FastAPI:
    gc_stats = GCStats()
    slots = max(1, total // amount)
    buffer: list[bytearray | None] = [None] * slots

    async def allocate() -> None:
        i = 0
        while True:
            await asyncio.sleep(delay)
            if i == slots:
                for j in range(slots):
                    buffer[j] = None
                i = 0
                gc.collect()
            buffer[i] = bytearray(amount)
            i += 1

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        tracemalloc.start()
        gc.callbacks.append(gc_stats.callback)
        task = asyncio.create_task(allocate())
        logger.info(f"Allocating {amount} bytes every {delay}s up to a total of {total}")
        yield
        task.cancel()
        gc.callbacks.remove(gc_stats.callback)
        tracemalloc.stop()

    app = FastAPI(title="expvardash example target", lifespan=lifespan)

    @app.get("/debug/vars")
    async def debug_vars():
        current, peak = tracemalloc.get_traced_memory()
        memstats = {
            "Alloc": current,
            "Sys": peak,
            "HeapAlloc": current,
            "HeapInuse": sum(len(b) for b in buffer if b is not None),
        }
        memstats.update(gc_stats.snapshot())
        return {"Cmdline": sys.argv, "Memstats": memstats}

    return app


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--delay", type=float, default=1.0, help="Interval to allocate memory at, in seconds")
    parser.add_argument("--amount", type=int, default=1000, help="Bytes to allocate per interval")
    parser.add_argument("--total", type=int, default=30000, help="Total bytes to allocate before resetting")
    parser.add_argument("--port", type=int, default=8123, help="Port to serve /debug/vars on")
    args = parser.parse_args()

    if args.amount <= 0 or args.total < args.amount or args.delay <= 0:
        parser.error("need delay > 0 and 0 < amount <= total")

    logging.basicConfig(level=logging.INFO)
    logger.info(f"Serving expvar data on port {args.port}")
    uvicorn.run(build_app(args.delay, args.amount, args.total), host="0.0.0.0", port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
