"""Sample records and the parsed shape of a target's /debug/vars document."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from pydantic import BaseModel, Field, StrictInt, StrictStr, field_validator

PAUSE_RING_SIZE = 256


class MemStats(BaseModel):
    """Subset of the runtime memory statistics published by the target."""

    alloc: StrictInt = Field(default=0, ge=0, alias="Alloc")
    sys: StrictInt = Field(default=0, ge=0, alias="Sys")
    heap_alloc: StrictInt = Field(default=0, ge=0, alias="HeapAlloc")
    heap_inuse: StrictInt = Field(default=0, ge=0, alias="HeapInuse")
    gc_cpu_fraction: float = Field(default=0.0, ge=0.0, le=1.0, allow_inf_nan=False, alias="GCCPUFraction")
    num_gc: StrictInt = Field(default=0, ge=0, alias="NumGC")
    pause_ns: list[StrictInt] = Field(default_factory=lambda: [0] * PAUSE_RING_SIZE, alias="PauseNs")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("gc_cpu_fraction", mode="before")
    @classmethod
    def _numeric_fraction(cls, value):
        # JSON numbers only; "0.5" or true are not coerced.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("GCCPUFraction must be a number")
        return value

    @field_validator("pause_ns")
    @classmethod
    def _fixed_ring(cls, value: list[int]) -> list[int]:
        # Decoded like a fixed [256] array: short input is zero-filled, extra entries dropped.
        ring = list(value[:PAUSE_RING_SIZE])
        ring.extend([0] * (PAUSE_RING_SIZE - len(ring)))
        return ring

    @property
    def last_pause_ns(self) -> int:
        """Duration of the most recent GC pause."""
        return self.pause_ns[(self.num_gc + PAUSE_RING_SIZE - 1) % PAUSE_RING_SIZE]


class RawTargetSnapshot(BaseModel):
    """One /debug/vars document as fetched from the monitored target."""

    cmdline: list[StrictStr] = Field(alias="Cmdline", min_length=1)
    memstats: MemStats = Field(alias="Memstats")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def command(self) -> str:
        return self.cmdline[0]


@dataclass(frozen=True)
class SampleRecord:
    """A single point-in-time capture held in the sample history."""

    sample_time: datetime | None = None
    command: str = ""
    alloc_bytes: int = 0
    sys_bytes: int = 0
    heap_alloc_bytes: int = 0
    heap_inuse_bytes: int = 0
    gc_cpu_fraction: float = 0.0

    @classmethod
    def from_snapshot(cls, snapshot: RawTargetSnapshot, sample_time: datetime) -> SampleRecord:
        mem = snapshot.memstats
        return cls(
            sample_time=sample_time,
            command=snapshot.command,
            alloc_bytes=mem.alloc,
            sys_bytes=mem.sys,
            heap_alloc_bytes=mem.heap_alloc,
            heap_inuse_bytes=mem.heap_inuse,
            gc_cpu_fraction=mem.gc_cpu_fraction,
        )

    @property
    def is_placeholder(self) -> bool:
        return self.sample_time is None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["sample_time"] = self.sample_time.isoformat() if self.sample_time else None
        return data


EMPTY_SAMPLE = SampleRecord()
