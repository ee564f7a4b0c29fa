"""Descriptor factories for common resource-backed sequences."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable, Iterator, List, Optional, Union

import boto3
import pyarrow as pa
import pyarrow.parquet as pq

from .config import S3Config
from .descriptor import SequenceDescriptor, create
from .errors import expect_state
from .models import Emit, Halt
from .protocols import PageClient

logger = logging.getLogger(__name__)


def count_from(start: int = 0, step: int = 1) -> SequenceDescriptor[int, int]:
    """Infinite sequence ``start, start + step, ...``. Bound it when consuming."""
    return create(
        lambda: start,
        lambda n: Emit([n], n + step),
        name="count_from",
    )


def from_iterable(factory: Callable[[], Iterable[Any]]) -> SequenceDescriptor[Iterator[Any], Any]:
    """
    Wrap an iterable factory as a descriptor.

    ``factory`` is called once per traversal. If the resulting iterator has a
    ``close()`` method (generators do) it is called by the finalizer.
    """

    def initializer() -> Iterator[Any]:
        return iter(factory())

    def step(iterator: Iterator[Any]):
        try:
            return Emit([next(iterator)], iterator)
        except StopIteration:
            return Halt(iterator)

    def finalizer(iterator: Iterator[Any]) -> None:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()

    return create(initializer, step, finalizer, name=getattr(factory, "__name__", "iterable"))


@dataclass(frozen=True)
class PageCursor:
    """Position of a paginated traversal."""

    page: int
    done: bool = False


def paginated(client: PageClient, start_page: int = 1) -> SequenceDescriptor[PageCursor, Any]:
    """
    Flatten a paginated client into a sequence of records.

    One page is fetched per step and its records form that step's batch. The
    sequence halts after the page reporting ``has_more=False``.
    """

    def step(cursor: PageCursor):
        expect_state(cursor, PageCursor, "page cursor")
        if cursor.done:
            return Halt(cursor)

        response = client.fetch_page(cursor.page)
        if not response.has_more:
            logger.info(f"Reached last page: {response.page}")
        return Emit(response.data, PageCursor(cursor.page + 1, done=not response.has_more))

    return create(lambda: PageCursor(start_page), step, name="paginated")


@dataclass
class ParquetCursor:
    """Open Parquet file and its record-batch iterator."""

    path: Path
    handle: BinaryIO
    batches: Iterator[pa.RecordBatch]
    batches_read: int = 0
    closed: bool = False


def parquet_records(
    path: Union[str, Path],
    batch_size: int = 1024,
    columns: Optional[List[str]] = None,
) -> SequenceDescriptor[ParquetCursor, dict]:
    """
    Stream the rows of a Parquet file as dicts, one record batch per step.

    The file is opened on first demand and closed by the finalizer, whether
    the traversal is exhausted, stopped, fails or is cancelled.

    Args:
        path: Parquet file path
        batch_size: Maximum rows read per step
        columns: Subset of columns to read

    Returns:
        SequenceDescriptor producing dict records
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    path = Path(path)

    def initializer() -> ParquetCursor:
        handle = open(path, "rb")
        try:
            parquet_file = pq.ParquetFile(handle)
            batches = parquet_file.iter_batches(batch_size=batch_size, columns=columns)
        except Exception:
            handle.close()
            raise
        logger.debug(
            f"Opened {path} ({parquet_file.metadata.num_rows:,} rows, "
            f"{parquet_file.num_row_groups} row groups)"
        )
        return ParquetCursor(path=path, handle=handle, batches=batches)

    def step(cursor: ParquetCursor):
        try:
            record_batch = next(cursor.batches)
        except StopIteration:
            return Halt(cursor)
        cursor.batches_read += 1
        return Emit(record_batch.to_pylist(), cursor)

    def finalizer(cursor: ParquetCursor) -> None:
        cursor.handle.close()
        cursor.closed = True
        logger.debug(f"Closed {cursor.path} after {cursor.batches_read} batches")

    return create(initializer, step, finalizer, name=f"parquet_records({path.name})")


def build_s3_client(config: S3Config):
    """Create a boto3 S3 client from configuration."""
    client_kwargs = {
        "region_name": config.region_name,
        "aws_access_key_id": config.aws_access_key_id,
        "aws_secret_access_key": config.aws_secret_access_key,
    }

    if config.endpoint_url:
        client_kwargs["endpoint_url"] = config.endpoint_url
        logger.info(f"Using custom S3 endpoint: {config.endpoint_url}")

    return boto3.client("s3", **client_kwargs)


@dataclass
class ListingCursor:
    """Continuation state of an S3 listing."""

    client: Any
    token: Optional[str] = None
    done: bool = False
    owns_client: bool = False
    pages: int = 0


def s3_object_keys(
    config: S3Config,
    prefix: Optional[str] = None,
    page_size: int = 1000,
    client: Any = None,
) -> SequenceDescriptor[ListingCursor, str]:
    """
    Stream the keys of a bucket, one ``list_objects_v2`` page per step.

    A client is created per traversal from ``config`` unless one is passed
    in; only a client created here is closed by the finalizer.

    Args:
        config: S3 configuration (bucket, credentials, endpoint)
        prefix: Key prefix, defaults to ``config.prefix``
        page_size: MaxKeys per request
        client: Existing boto3 S3 client to reuse

    Returns:
        SequenceDescriptor producing object keys
    """
    if prefix is None:
        prefix = config.prefix

    def initializer() -> ListingCursor:
        if client is not None:
            return ListingCursor(client=client)
        return ListingCursor(client=build_s3_client(config), owns_client=True)

    def step(cursor: ListingCursor):
        if cursor.done:
            return Halt(cursor)

        request = {"Bucket": config.bucket_name, "Prefix": prefix, "MaxKeys": page_size}
        if cursor.token:
            request["ContinuationToken"] = cursor.token

        response = cursor.client.list_objects_v2(**request)
        keys = [obj["Key"] for obj in response.get("Contents", [])]
        cursor.pages += 1
        cursor.token = response.get("NextContinuationToken")
        cursor.done = not response.get("IsTruncated", False)
        logger.debug(f"Listed {len(keys)} keys from s3://{config.bucket_name}/{prefix} (page {cursor.pages})")
        return Emit(keys, cursor)

    def finalizer(cursor: ListingCursor) -> None:
        if cursor.owns_client:
            cursor.client.close()

    return create(initializer, step, finalizer, name=f"s3_object_keys({config.bucket_name})")


def map_elements(descriptor: SequenceDescriptor, fn: Callable[[Any], Any]) -> SequenceDescriptor:
    """Derive a descriptor whose batches are ``descriptor``'s batches with ``fn`` applied."""

    def step(state):
        result = descriptor.step(state)
        if isinstance(result, Emit):
            return Emit([fn(element) for element in result.batch], result.next_state)
        return result

    return create(descriptor.initializer, step, descriptor.finalizer, name=descriptor.name)
