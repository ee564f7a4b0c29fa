"""Sequence descriptors: the immutable (initializer, step, finalizer) triple."""

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, Optional, TypeVar

from .errors import ProtocolError
from .models import StepResult

if TYPE_CHECKING:
    from .engine import Traversal
    from .protocols import LoggerProtocol

S = TypeVar("S")
E = TypeVar("E")

logger = logging.getLogger(__name__)


def pass_through(state: S) -> S:
    """Default finalizer: hand back the state it was given."""
    return state


@dataclass(frozen=True)
class SequenceDescriptor(Generic[S, E]):
    """
    Immutable bundle of the three callbacks defining one lazy sequence.

    A descriptor holds no traversal state. Each call to ``traverse()`` (or each
    ``for`` loop over the descriptor itself) starts an independent traversal,
    re-running the initializer and repeating every step.
    """

    initializer: Callable[[], S]
    step: Callable[[S], StepResult]
    finalizer: Callable[[S], Any] = pass_through
    name: str = "sequence"

    def traverse(self, logger: Optional["LoggerProtocol"] = None) -> "Traversal[S, E]":
        """Begin a fresh traversal of this descriptor."""
        from .engine import begin

        return begin(self, logger=logger)

    def __iter__(self) -> Iterator[E]:
        return iter(self.traverse())


def _check_callback(role: str, fn: Any, arity: int) -> None:
    if fn is None:
        raise ProtocolError(f"missing {role} callback")
    if not callable(fn):
        raise ProtocolError(f"{role} must be callable, got {type(fn).__name__}")

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        # Some builtins expose no signature; accept them as-is.
        return

    try:
        signature.bind(*([None] * arity))
    except TypeError as e:
        raise ProtocolError(
            f"{role} must accept {arity} positional argument(s), "
            f"got signature {signature}"
        ) from e


def create(
    initializer: Callable[[], S],
    step: Callable[[S], StepResult],
    finalizer: Optional[Callable[[S], Any]] = None,
    name: Optional[str] = None,
) -> SequenceDescriptor[S, E]:
    """
    Build a sequence descriptor.

    No callback is invoked here. The callbacks are only checked for presence
    and for a signature compatible with how the engine calls them.

    Args:
        initializer: Called with no arguments on first demand; returns the initial state
        step: Called with the current state; returns ``Emit(batch, next_state)`` or ``Halt(state)``
        finalizer: Called exactly once per traversal with the final state. Defaults to a
            pass-through that does nothing with the state
        name: Label used in log messages

    Returns:
        SequenceDescriptor

    Raises:
        ProtocolError: If a callback is missing, not callable or has the wrong arity
    """
    _check_callback("initializer", initializer, 0)
    _check_callback("step", step, 1)
    if finalizer is None:
        finalizer = pass_through
    else:
        _check_callback("finalizer", finalizer, 1)

    if name is None:
        name = getattr(step, "__name__", "sequence")

    logger.debug(f"Created sequence descriptor '{name}'")
    return SequenceDescriptor(initializer=initializer, step=step, finalizer=finalizer, name=name)
