"""Resource Streams - lazy sequences built from evolving state with guaranteed cleanup."""

__version__ = "0.1.0"

from .consumers import chunks, fold, for_each, take, to_arrow_table, to_dataframe, to_list
from .descriptor import SequenceDescriptor, create, pass_through
from .engine import END_OF_SEQUENCE, Traversal, begin, cancel, pull, stop
from .errors import (
    CancellationSignal,
    ProtocolError,
    ResourceStreamError,
    StateMatchError,
    StepFailure,
    expect_state,
)
from .models import Emit, Halt, StepResult, TraversalStatus

__all__ = [
    # Descriptors
    "SequenceDescriptor",
    "create",
    "pass_through",
    # Step results
    "Emit",
    "Halt",
    "StepResult",
    # Engine
    "Traversal",
    "TraversalStatus",
    "END_OF_SEQUENCE",
    "begin",
    "pull",
    "stop",
    "cancel",
    # Consumers
    "take",
    "to_list",
    "fold",
    "for_each",
    "chunks",
    "to_dataframe",
    "to_arrow_table",
    # Errors
    "ResourceStreamError",
    "ProtocolError",
    "StepFailure",
    "StateMatchError",
    "CancellationSignal",
    "expect_state",
]
