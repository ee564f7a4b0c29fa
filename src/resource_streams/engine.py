"""Traversal engine: drives one run of a sequence descriptor.

A traversal pulls elements on demand, invoking the descriptor's initializer
on the first pull and its step callback only while demand is outstanding.
Whatever ends the traversal (a ``Halt`` result, an explicit ``stop()``, a
fault in a callback or in the consumer, cancellation, or the traversal being
dropped while still running) the finalizer runs exactly once with the state
current at that moment, and the first termination cause wins.
"""

import logging
import weakref
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar, Union

from .descriptor import SequenceDescriptor
from .errors import StepFailure
from .models import Emit, Halt, TraversalStats, TraversalStatus
from .protocols import LoggerProtocol

S = TypeVar("S")
E = TypeVar("E")


class _EndOfSequence:
    """Sentinel returned by ``pull`` once a traversal has no more elements."""

    def __repr__(self) -> str:
        return "END_OF_SEQUENCE"


END_OF_SEQUENCE = _EndOfSequence()

_NO_STATE = object()


class _StateSlot:
    """Live state of a started traversal, held apart so a drop hook can reach it."""

    __slots__ = ("state",)

    def __init__(self):
        self.state = _NO_STATE


def _finalize_dropped(
    descriptor: SequenceDescriptor, slot: _StateSlot, logger: LoggerProtocol
) -> None:
    """Run the finalizer of a traversal garbage-collected while still running."""
    state, slot.state = slot.state, _NO_STATE
    if state is _NO_STATE:
        return

    logger.warning(
        f"Traversal of '{descriptor.name}' dropped while running; finalizing with {state!r}"
    )
    try:
        descriptor.finalizer(state)
    except Exception:
        # Nobody is left to re-raise to.
        logger.error(f"Finalizer of dropped traversal '{descriptor.name}' failed", exc_info=True)


class Traversal(Generic[S, E]):
    """
    One stateful run of a SequenceDescriptor.

    Use it as a context manager to tie the finalizer to a block:

        with begin(descriptor) as traversal:
            for element in traversal:
                ...

    Leaving the block normally (or through GeneratorExit) stops the
    traversal. Leaving it with an ``Exception`` fails it, and any other
    ``BaseException`` cancels it. The exception is never suppressed.

    A bare ``for`` loop outside such a block cannot see an exception raised
    in its own body: the iterator is simply closed, which stops the
    traversal. Wrap the loop in ``with`` for the fault to fail it.

    A started traversal that is dropped without reaching a terminal state is
    finalized when it is garbage-collected.

    A traversal must be driven by one consumer at a time; it does no locking.
    """

    def __init__(
        self,
        descriptor: SequenceDescriptor[S, E],
        logger: Optional[LoggerProtocol] = None,
    ):
        """
        Initialize a traversal in the NOT_STARTED state. No callback is invoked.

        Args:
            descriptor: Descriptor to traverse
            logger: Logger instance (defaults to module logger)
        """
        self.descriptor = descriptor
        self.status = TraversalStatus.NOT_STARTED
        self.stats = TraversalStats()
        self.finalizer_error: Optional[BaseException] = None
        self._logger = logger or logging.getLogger(__name__)
        self._slot = _StateSlot()
        self._on_drop: Optional[weakref.finalize] = None
        self._scopes = 0
        self._buffer: Deque[E] = deque()

    def __repr__(self) -> str:
        return f"<Traversal '{self.descriptor.name}' {self.status.value}>"

    def __enter__(self) -> "Traversal[S, E]":
        self._scopes += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._scopes -= 1
        if exc_val is None or isinstance(exc_val, GeneratorExit):
            self.stop()
        elif isinstance(exc_val, Exception):
            self.fail(exc_val)
        else:
            self.cancel(exc_val)
        return False

    def __iter__(self) -> Iterator[E]:
        return self._iterate()

    @property
    def finished(self) -> bool:
        return self.status.is_terminal

    def pull(self) -> Union[E, _EndOfSequence]:
        """
        Return the next element, or END_OF_SEQUENCE.

        Buffered elements from the last batch are returned first. Otherwise
        ``step`` is called until it emits a non-empty batch or halts; empty
        batches only advance the state.

        Raises:
            Whatever the initializer or step raised, after the finalizer ran.
            StepFailure: If step returned something other than Emit or Halt
        """
        if self.status is TraversalStatus.NOT_STARTED:
            self._start()
        if self.status.is_terminal:
            return END_OF_SEQUENCE

        if self._buffer:
            self.stats.emitted += 1
            return self._buffer.popleft()

        try:
            element = self._advance()
        except Exception as e:
            self._terminate(TraversalStatus.FAILED, e)
            raise
        except BaseException as e:
            self._terminate(TraversalStatus.CANCELLED, e)
            raise

        if element is not END_OF_SEQUENCE:
            self.stats.emitted += 1
        return element

    def stop(self) -> None:
        """End the traversal early on behalf of the consumer. No-op once finished."""
        self._terminate(TraversalStatus.STOPPED)

    def fail(self, cause: BaseException) -> None:
        """Finalize after a fault outside the engine (e.g. in the consumer)."""
        self._terminate(TraversalStatus.FAILED, cause)

    def cancel(self, cause: Optional[BaseException] = None) -> None:
        """Finalize because the owning context is being torn down."""
        self._terminate(TraversalStatus.CANCELLED, cause)

    def _start(self) -> None:
        self._logger.debug(f"Starting traversal of '{self.descriptor.name}'")
        try:
            state = self.descriptor.initializer()
        except Exception:
            # Nothing was acquired, so there is no state to finalize.
            self.status = TraversalStatus.FAILED
            raise
        except BaseException:
            self.status = TraversalStatus.CANCELLED
            raise
        self._slot.state = state
        self.status = TraversalStatus.RUNNING
        self._on_drop = weakref.finalize(
            self, _finalize_dropped, self.descriptor, self._slot, self._logger
        )

    def _advance(self) -> Union[E, _EndOfSequence]:
        while True:
            result = self.descriptor.step(self._slot.state)
            self.stats.steps += 1

            if isinstance(result, Halt):
                self._slot.state = result.final_state
                self._terminate(TraversalStatus.EXHAUSTED)
                return END_OF_SEQUENCE

            if not isinstance(result, Emit):
                raise StepFailure(
                    f"step of '{self.descriptor.name}' returned {result!r}, "
                    f"expected Emit or Halt"
                )

            self._slot.state = result.next_state
            if result.batch:
                self._buffer.extend(result.batch[1:])
                return result.batch[0]

    def _terminate(self, status: TraversalStatus, cause: Optional[BaseException] = None) -> None:
        if self.status.is_terminal:
            return

        previous = self.status
        self.status = status
        self._buffer.clear()
        if previous is TraversalStatus.NOT_STARTED:
            self._logger.debug(
                f"Traversal of '{self.descriptor.name}' {status.value} before it started"
            )
            return

        if self._on_drop is not None:
            self._on_drop.detach()
        state, self._slot.state = self._slot.state, _NO_STATE
        self._logger.debug(
            f"Traversal of '{self.descriptor.name}' {status.value} after "
            f"{self.stats.steps} steps; finalizing with {state!r}"
        )
        self.stats.finalizer_calls += 1
        try:
            self.descriptor.finalizer(state)
        except BaseException as finalizer_error:
            if cause is None:
                raise
            self.finalizer_error = finalizer_error
            self._logger.error(
                f"Finalizer of '{self.descriptor.name}' failed while handling "
                f"{type(cause).__name__}: {finalizer_error!r}",
                exc_info=finalizer_error,
            )
            cause.add_note(
                f"finalizer of '{self.descriptor.name}' also failed: {finalizer_error!r}"
            )
            if cause.__context__ is None:
                if finalizer_error.__context__ is cause:
                    finalizer_error.__context__ = None
                cause.__context__ = finalizer_error

    def _iterate(self) -> Iterator[E]:
        try:
            while True:
                element = self.pull()
                if element is END_OF_SEQUENCE:
                    return
                yield element
        except GeneratorExit:
            # Inside a with block, its exit decides between stop, fail and cancel.
            if not self._scopes:
                self.stop()
            raise
        except Exception as e:
            self.fail(e)
            raise
        except BaseException as e:
            self.cancel(e)
            raise


def begin(
    descriptor: SequenceDescriptor[S, E], logger: Optional[LoggerProtocol] = None
) -> Traversal[S, E]:
    """Allocate a fresh traversal of ``descriptor``. No callback is invoked."""
    return Traversal(descriptor, logger=logger)


def pull(traversal: Traversal[S, E]) -> Union[E, _EndOfSequence]:
    """Return the next element of ``traversal`` or END_OF_SEQUENCE."""
    return traversal.pull()


def stop(traversal: Traversal) -> None:
    """Stop ``traversal`` early, running its finalizer if it was started."""
    traversal.stop()


def cancel(traversal: Traversal, cause: Optional[BaseException] = None) -> None:
    """Cancel ``traversal``, running its finalizer if it was started."""
    traversal.cancel(cause)
