"""Sink writing the records of a traversal to Parquet."""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from .consumers import Source, as_traversal
from .engine import END_OF_SEQUENCE
from .models import WriteStatistics
from .protocols import LoggerProtocol


class ParquetWriter:
    """
    Writes dict records pulled from a traversal to a Parquet file.

    Uses context manager pattern for resource management. Records are
    grouped into row groups of ``rows_per_group`` rows; the schema is
    inferred from the first group unless one is given.
    """

    def __init__(
        self,
        output_path: Path,
        compression: str = "snappy",
        rows_per_group: int = 1000,
        schema: Optional[pa.Schema] = None,
        logger: Optional[LoggerProtocol] = None,
    ):
        """
        Initialize Parquet writer.

        Args:
            output_path: Path to output Parquet file
            compression: Compression codec
            rows_per_group: Records per row group
            schema: Explicit schema for every row group
            logger: Logger instance
        """
        if rows_per_group <= 0:
            raise ValueError("rows_per_group must be positive")
        self.output_path = Path(output_path)
        self.compression = compression
        self.rows_per_group = rows_per_group
        self.schema = schema
        self._logger = logger or logging.getLogger(__name__)
        self._writer: Optional[pq.ParquetWriter] = None
        self._total_rows = 0
        self._batch_count = 0

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and close writer."""
        self.close()

    def write(self, source: Source, limit: Optional[int] = None) -> WriteStatistics:
        """
        Drain records from a traversal into the Parquet file.

        A fault while writing fails the traversal, so its finalizer runs
        before the error propagates.

        Args:
            source: Traversal or descriptor producing dict records
            limit: Stop the traversal after this many records

        Returns:
            WriteStatistics with operation details
        """
        start_time = time.time()
        pending: List[Dict[str, Any]] = []

        with as_traversal(source) as traversal:
            while limit is None or self._total_rows + len(pending) < limit:
                record = traversal.pull()
                if record is END_OF_SEQUENCE:
                    break
                pending.append(record)
                if len(pending) >= self.rows_per_group:
                    self._write_group(pending)
                    pending = []

            if pending:
                self._write_group(pending)

        elapsed_time = time.time() - start_time
        self.close()
        file_size = self.output_path.stat().st_size if self.output_path.exists() else 0

        self._logger.info(
            f"Successfully wrote {self._total_rows} total rows to {self.output_path}"
        )

        return WriteStatistics(
            total_rows=self._total_rows,
            total_batches=self._batch_count,
            file_size_bytes=file_size,
            elapsed_time=elapsed_time,
            columns=list(self.schema.names) if self.schema is not None else [],
        )

    def _write_group(self, records: List[Dict[str, Any]]) -> None:
        table = pa.Table.from_pylist(records, schema=self.schema)

        # Initialize writer on first batch
        if self._writer is None:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.schema = table.schema
            self._writer = pq.ParquetWriter(
                str(self.output_path),
                table.schema,
                compression=self.compression,
            )

        self._writer.write_table(table)
        self._total_rows += table.num_rows
        self._batch_count += 1
        self._logger.debug(f"Written {table.num_rows} rows (total: {self._total_rows})")

    def close(self):
        """Close the Parquet writer."""
        if self._writer:
            self._writer.close()
            self._writer = None
