"""Consumption adapters built purely on ``pull`` and ``stop``.

Every adapter accepts either a running/unstarted Traversal or a
SequenceDescriptor, in which case a fresh traversal is begun. The traversal
is always finished when the adapter returns or raises: a fault in a
combiner or callback fails it (finalizer first) before propagating.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

import pandas as pd
import pyarrow as pa

from .descriptor import SequenceDescriptor
from .engine import END_OF_SEQUENCE, Traversal, begin

A = TypeVar("A")

Source = Union[Traversal, SequenceDescriptor]

logger = logging.getLogger(__name__)


def as_traversal(source: Source) -> Traversal:
    """Return ``source`` itself if it is a traversal, else begin one."""
    if isinstance(source, Traversal):
        return source
    if isinstance(source, SequenceDescriptor):
        return begin(source)
    raise TypeError(f"expected Traversal or SequenceDescriptor, got {type(source).__name__}")


def take(source: Source, n: int) -> List[Any]:
    """
    Collect at most ``n`` elements, then stop the traversal.

    ``take(source, 0)`` never starts the traversal.
    """
    if n < 0:
        raise ValueError("n must not be negative")

    items: List[Any] = []
    with as_traversal(source) as traversal:
        while len(items) < n:
            element = traversal.pull()
            if element is END_OF_SEQUENCE:
                break
            items.append(element)
    return items


def to_list(source: Source) -> List[Any]:
    """Collect every element. Never returns for a sequence that does not halt."""
    items: List[Any] = []
    with as_traversal(source) as traversal:
        while True:
            element = traversal.pull()
            if element is END_OF_SEQUENCE:
                break
            items.append(element)
    return items


def fold(source: Source, initial: A, combiner: Callable[[A, Any], A]) -> A:
    """Reduce the elements left to right, starting from ``initial``."""
    accumulator = initial
    with as_traversal(source) as traversal:
        while True:
            element = traversal.pull()
            if element is END_OF_SEQUENCE:
                break
            accumulator = combiner(accumulator, element)
    return accumulator


def for_each(source: Source, fn: Callable[[Any], Any]) -> int:
    """Call ``fn`` on each element; return how many elements were visited."""
    count = 0
    with as_traversal(source) as traversal:
        while True:
            element = traversal.pull()
            if element is END_OF_SEQUENCE:
                break
            fn(element)
            count += 1
    return count


def chunks(source: Source, size: int) -> Iterable[List[Any]]:
    """
    Yield lists of up to ``size`` elements.

    Closing the returned generator early stops the traversal.
    """
    if size <= 0:
        raise ValueError("size must be positive")

    chunk: List[Any] = []
    with as_traversal(source) as traversal:
        for element in traversal:
            chunk.append(element)
            if len(chunk) >= size:
                yield chunk
                chunk = []

    # Yield remaining elements
    if chunk:
        yield chunk


def to_dataframe(
    source: Source, columns: Optional[List[str]] = None, limit: Optional[int] = None
) -> pd.DataFrame:
    """
    Collect record elements (dicts) into a pandas DataFrame.

    Args:
        source: Traversal or descriptor producing dict records
        columns: Column order; defaults to the keys in first-seen order
        limit: Stop after this many records (required for infinite sequences)

    Returns:
        pandas DataFrame with one row per element
    """
    records: List[Dict[str, Any]] = take(source, limit) if limit is not None else to_list(source)
    df = pd.DataFrame.from_records(records, columns=columns)
    logger.debug(f"Collected DataFrame with {len(df):,} rows and {len(df.columns)} columns")
    return df


def to_arrow_table(
    source: Source, schema: Optional[pa.Schema] = None, limit: Optional[int] = None
) -> pa.Table:
    """
    Collect record elements (dicts) into a PyArrow table.

    Args:
        source: Traversal or descriptor producing dict records
        schema: Explicit schema; inferred from the records when omitted
        limit: Stop after this many records (required for infinite sequences)

    Returns:
        PyArrow Table
    """
    records = take(source, limit) if limit is not None else to_list(source)
    table = pa.Table.from_pylist(records, schema=schema)
    logger.debug(
        f"Collected PyArrow table with {table.num_rows:,} rows and {table.num_columns} columns"
    )
    return table
