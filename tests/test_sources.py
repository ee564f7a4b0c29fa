"""Tests for sources module."""

import tempfile
from pathlib import Path

import boto3
import pyarrow as pa
import pyarrow.parquet as pq
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from resource_streams import (
    StateMatchError,
    TraversalStatus,
    begin,
    create,
    take,
    to_list,
)
from resource_streams.api_client import FakeRecordClient
from resource_streams.config import S3Config
from resource_streams.sources import (
    PageCursor,
    count_from,
    from_iterable,
    map_elements,
    paginated,
    parquet_records,
    s3_object_keys,
)


def capture_final_state(descriptor, captured):
    """Wrap ``descriptor`` so the state handed to its finalizer is recorded."""

    def finalizer(state):
        captured.append(state)
        descriptor.finalizer(state)

    return create(descriptor.initializer, descriptor.step, finalizer, name=descriptor.name)


def make_s3_config():
    return S3Config(
        endpoint_url=None,
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
        bucket_name="bucket",
        prefix="data/",
    )


def make_s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


def test_count_from():
    """Test the infinite counter."""
    assert take(count_from(97), 3) == [97, 98, 99]
    assert take(count_from(10, step=-5), 3) == [10, 5, 0]


def test_from_iterable_closes_generator_on_stop():
    """Test that stopping a wrapped generator runs its cleanup."""
    events = []

    def resource_handler():
        events.append("acquire")
        try:
            n = 0
            while True:
                yield n
                n += 1
        finally:
            events.append("release")

    assert take(from_iterable(resource_handler), 2) == [0, 1]
    assert events == ["acquire", "release"]


def test_from_iterable_halts_on_exhaustion():
    """Test that a finite iterable halts the sequence."""
    assert to_list(from_iterable(lambda: ["a", "b", "c"])) == ["a", "b", "c"]


def test_paginated_flattens_pages():
    """Test that every page's records are emitted in order."""
    client = FakeRecordClient(page_size=3, total_pages=2)

    rows = to_list(paginated(client))

    assert [row["id"] for row in rows] == [0, 1, 2, 3, 4, 5]
    assert client.pages_fetched == 2


def test_paginated_fetches_lazily():
    """Test that only the pages needed for the demand are fetched."""
    client = FakeRecordClient(page_size=3, total_pages=10)

    rows = take(paginated(client), 2)

    assert len(rows) == 2
    assert client.pages_fetched == 1


def test_paginated_rejects_foreign_state():
    """Test that a step given the wrong state shape raises StateMatchError."""
    descriptor = paginated(FakeRecordClient(page_size=1, total_pages=1))
    bad = create(lambda: {"page": 1}, descriptor.step)

    with pytest.raises(StateMatchError):
        take(bad, 1)


def test_paginated_final_state():
    """Test that the finalizer receives the cursor after the last page."""
    captured = []
    descriptor = capture_final_state(paginated(FakeRecordClient(page_size=2, total_pages=3)), captured)

    assert len(to_list(descriptor)) == 6
    assert captured == [PageCursor(page=4, done=True)]


def test_parquet_records_streams_and_closes_file():
    """Test reading a Parquet file in batches and closing it on early stop."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "test.parquet"
        table = pa.table({"id": list(range(10)), "value": [f"v{i}" for i in range(10)]})
        pq.write_table(table, path)

        captured = []
        traversal = begin(capture_final_state(parquet_records(path, batch_size=4), captured))

        rows = take(traversal, 5)

        assert rows[0] == {"id": 0, "value": "v0"}
        assert [row["id"] for row in rows] == [0, 1, 2, 3, 4]
        assert traversal.status is TraversalStatus.STOPPED
        assert captured[0].batches_read == 2
        assert captured[0].closed
        assert captured[0].handle.closed


def test_parquet_records_column_subset():
    """Test reading a subset of columns until exhaustion."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "test.parquet"
        pq.write_table(pa.table({"id": [1, 2, 3], "value": ["a", "b", "c"]}), path)

        rows = to_list(parquet_records(path, columns=["value"]))

        assert rows == [{"value": "a"}, {"value": "b"}, {"value": "c"}]


def test_parquet_records_missing_file():
    """Test that a missing file fails on first pull, not at construction."""
    descriptor = parquet_records("/nonexistent/data.parquet")

    with pytest.raises(FileNotFoundError):
        take(descriptor, 1)


def test_s3_object_keys_follows_continuation_tokens():
    """Test listing keys across two pages with a stubbed client."""
    client = make_s3_client()
    stubber = Stubber(client)
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "data/a"}, {"Key": "data/b"}], "IsTruncated": True, "NextContinuationToken": "tok"},
        {"Bucket": "bucket", "Prefix": "data/", "MaxKeys": 2},
    )
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "data/c"}], "IsTruncated": False},
        {"Bucket": "bucket", "Prefix": "data/", "MaxKeys": 2, "ContinuationToken": "tok"},
    )

    with stubber:
        keys = to_list(s3_object_keys(make_s3_config(), page_size=2, client=client))

    assert keys == ["data/a", "data/b", "data/c"]
    stubber.assert_no_pending_responses()


def test_s3_object_keys_client_error_fails_traversal():
    """Test that a service error fails the traversal and propagates."""
    client = make_s3_client()
    stubber = Stubber(client)
    stubber.add_client_error("list_objects_v2", service_error_code="NoSuchBucket", http_status_code=404)

    traversal = begin(s3_object_keys(make_s3_config(), client=client))

    with stubber:
        with pytest.raises(ClientError):
            take(traversal, 1)

    assert traversal.status is TraversalStatus.FAILED


def test_map_elements():
    """Test transforming every element while keeping the finalizer."""
    captured = []
    descriptor = map_elements(capture_final_state(count_from(1), captured), lambda n: n * 10)

    assert take(descriptor, 3) == [10, 20, 30]
    assert captured == [4]
