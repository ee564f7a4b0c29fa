"""Exception types raised by descriptors, traversals and author callbacks."""

from typing import Any, Callable, Type, Union


class ResourceStreamError(Exception):
    """Base class for errors raised by resource_streams."""


class ProtocolError(ResourceStreamError):
    """A sequence descriptor was built from missing or ill-shaped callbacks.

    Raised by ``create()`` before any traversal exists.
    """


class StepFailure(ResourceStreamError):
    """A fault raised while producing a batch."""


class StateMatchError(StepFailure):
    """An author callback received a state it cannot reconcile with its expected shape."""

    def __init__(self, message: str, state: Any = None):
        super().__init__(message)
        self.state = state


class CancellationSignal(BaseException):
    """The context owning a traversal was torn down before it finished.

    Like ``GeneratorExit`` and ``KeyboardInterrupt`` this derives from
    ``BaseException`` so ``except Exception`` blocks in author code let it pass.
    """


def expect_state(state: Any, expected: Union[Type, Callable[[Any], bool]], what: str = "state") -> Any:
    """Return ``state`` if it has the expected shape, else raise StateMatchError.

    Args:
        state: Value received by an initializer/step/finalizer callback
        expected: A type (or tuple of types) checked with isinstance, or a predicate
        what: Name used in the error message

    Returns:
        The state unchanged
    """
    if isinstance(expected, (type, tuple)):
        matched = isinstance(state, expected)
        shape = getattr(expected, "__name__", repr(expected))
    else:
        matched = bool(expected(state))
        shape = getattr(expected, "__name__", "predicate")
    if not matched:
        raise StateMatchError(f"{what} {state!r} does not match {shape}", state=state)
    return state
