"""Data models shared between the streaming engine and pod sources."""

from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

RUNNING_PHASE = "Running"


@dataclass(frozen=True)
class PodDescriptor:
    """A pod as returned by a listing call."""

    name: str
    namespace: str
    phase: Optional[str] = None

    @property
    def is_running(self) -> bool:
        """Check if the pod is in the Running phase."""
        return self.phase == RUNNING_PHASE


@dataclass(frozen=True)
class LogOptions:
    """Parameters of a log read."""

    follow: bool = True
    timestamps: bool = False
    previous: bool = False
    tail_lines: Optional[int] = None
    since_seconds: Optional[int] = None

    @classmethod
    def for_history(
        cls, previous: bool, tail_lines: int, since_seconds: int
    ) -> "LogOptions":
        """Options of the one-shot read printed before following.

        Timestamps are always requested: they drive the cross-pod sort.
        """
        return cls(
            follow=False,
            timestamps=True,
            previous=previous,
            tail_lines=tail_lines or None,
            since_seconds=since_seconds or None,
        )


@runtime_checkable
class PodSource(Protocol):
    """Capability needed by the engine to discover and read pods."""

    async def list_pods(self, namespace: str) -> List[PodDescriptor]:
        """List the pods of a namespace."""
        ...

    async def is_running(self, namespace: str, name: str) -> bool:
        """Tell whether a pod is still in the Running phase."""
        ...

    def stream_lines(
        self, namespace: str, name: str, options: LogOptions
    ) -> AsyncIterator[str]:
        """Yield the log lines of a pod until the stream ends."""
        ...

    async def fetch_previous_lines(
        self, namespace: str, name: str, options: LogOptions
    ) -> List[str]:
        """Read a bounded set of log lines in one call."""
        ...
