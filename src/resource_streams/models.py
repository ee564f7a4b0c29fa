"""Step results, traversal status and the data models used by sources and sinks."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Tuple, TypeVar, Union

S = TypeVar("S")
E = TypeVar("E")


class TraversalStatus(str, Enum):
    """Lifecycle of a single traversal."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (TraversalStatus.NOT_STARTED, TraversalStatus.RUNNING)


@dataclass(frozen=True, init=False)
class Emit(Generic[S, E]):
    """Step result carrying a batch of elements and the state for the next step."""

    batch: Tuple[E, ...]
    next_state: S

    def __init__(self, batch: Iterable[E], next_state: S):
        object.__setattr__(self, "batch", tuple(batch))
        object.__setattr__(self, "next_state", next_state)


@dataclass(frozen=True)
class Halt(Generic[S]):
    """Step result ending the sequence; ``final_state`` goes to the finalizer."""

    final_state: S


StepResult = Union[Emit, Halt]


@dataclass
class TraversalStats:
    """Counters kept by a traversal."""

    steps: int = 0
    emitted: int = 0
    finalizer_calls: int = 0


@dataclass
class PageResponse:
    """One page returned by a paginated client."""

    data: List[Dict[str, Any]]
    page: int
    page_size: int
    has_more: bool


@dataclass
class WriteStatistics:
    """Statistics for write operations."""

    total_rows: int = 0
    total_batches: int = 0
    file_size_bytes: int = 0
    elapsed_time: float = 0.0
    columns: List[str] = field(default_factory=list)
