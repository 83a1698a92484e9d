"""Errors raised while reading the monitored target."""

from __future__ import annotations


class TargetError(Exception):
    """Base class for failures reaching or understanding the monitored target."""

    kind = "error"

    def __init__(self, url: str, detail: str) -> None:
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.detail = detail


class TargetUnavailableError(TargetError):
    """Transport failure or non-success status from the target."""

    kind = "unavailable"


class TargetTimeoutError(TargetError):
    """The target did not answer within the fetch timeout."""

    kind = "timeout"


class MalformedSnapshotError(TargetError):
    """The target answered, but the body is not a usable /debug/vars document."""

    kind = "malformed"
