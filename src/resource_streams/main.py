"""Main entry point: stream records from a source into a Parquet file."""

import logging
import sys
import time

from .api_client import FakeRecordClient
from .config import AppConfig, get_app_config, get_s3_config
from .descriptor import SequenceDescriptor
from .engine import begin
from .models import WriteStatistics
from .sources import map_elements, paginated, s3_object_keys
from .writers import ParquetWriter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", verbose: bool = False):
    """Configure logging level.

    Args:
        level: Level name used when not verbose
        verbose: Enable verbose logging
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def build_source(app_config: AppConfig) -> SequenceDescriptor:
    """Build the configured record source."""
    if app_config.source_type == "api":
        client = FakeRecordClient(
            page_size=app_config.page_size,
            total_pages=app_config.total_pages,
            seed=app_config.seed,
        )
        return paginated(client)

    keys = s3_object_keys(get_s3_config(), page_size=app_config.page_size)
    return map_elements(keys, lambda key: {"key": key})


def print_summary(stats: WriteStatistics, steps: int, elapsed: float):
    """Print summary statistics."""
    print("\n" + "=" * 80)
    print("EXECUTION SUMMARY")
    print("=" * 80)
    print(f"  Rows written: {stats.total_rows:,}")
    print(f"  Row groups: {stats.total_batches}")
    print(f"  Steps run: {steps}")
    print(f"  Columns: {', '.join(stats.columns)}")
    print(f"  File size: {stats.file_size_bytes / 1024:.2f} KB")
    print(f"  Time taken: {elapsed:.2f} seconds")
    print("=" * 80)


def main():
    """Main execution function."""
    try:
        app_config = get_app_config()
        setup_logging(app_config.log_level)

        logger.info("Starting resource stream export")
        logger.info(f"Source: {app_config.source_type}")
        logger.info(f"Take limit: {app_config.take_limit:,}")
        logger.info(f"Output: {app_config.output_file}")

        start_time = time.time()
        traversal = begin(build_source(app_config))
        with ParquetWriter(
            app_config.output_file,
            compression=app_config.compression,
            rows_per_group=app_config.rows_per_group,
        ) as writer:
            stats = writer.write(traversal, limit=app_config.take_limit)

        logger.info(f"Traversal finished as {traversal.status.value}")
        print_summary(stats, traversal.stats.steps, time.time() - start_time)
        return 0

    except KeyboardInterrupt:
        logger.warning("\nExecution interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"\nError during execution: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
