"""Configuration management for the application."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

SOURCE_TYPES = ("api", "s3")


@dataclass
class S3Config:
    """S3 configuration parameters."""

    endpoint_url: Optional[str]
    region_name: str
    aws_access_key_id: str
    aws_secret_access_key: str
    bucket_name: str
    prefix: str = ""

    @classmethod
    def from_env(cls) -> "S3Config":
        """Load S3 configuration from environment variables.

        Supports both LocalStack and AWS S3 configurations:
        - If USE_LOCALSTACK=true, uses LOCALSTACK_ENDPOINT_URL
        - Otherwise, uses S3_ENDPOINT_URL (or None for AWS S3)
        - Supports both AWS_REGION and AWS_DEFAULT_REGION
        """
        use_localstack = os.getenv("USE_LOCALSTACK", "true").lower() == "true"

        if use_localstack:
            endpoint_url = os.getenv(
                "LOCALSTACK_ENDPOINT_URL",
                os.getenv("S3_ENDPOINT_URL", "http://localhost:4566"),
            )
        else:
            endpoint_url = os.getenv("S3_ENDPOINT_URL") or None

        region_name = os.getenv("AWS_DEFAULT_REGION") or os.getenv("AWS_REGION", "us-east-1")

        return cls(
            endpoint_url=endpoint_url,
            region_name=region_name,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID", "test"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY", "test"),
            bucket_name=os.getenv("S3_BUCKET_NAME", "parquet-data-bucket"),
            prefix=os.getenv("S3_PREFIX", ""),
        )


@dataclass
class AppConfig:
    """Application configuration parameters."""

    log_level: str = "INFO"
    source_type: str = "api"
    page_size: int = 100
    total_pages: int = 5
    take_limit: int = 250
    rows_per_group: int = 100
    output_file: Path = Path("records.parquet")
    compression: str = "snappy"
    seed: int = 42

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.source_type not in SOURCE_TYPES:
            raise ValueError(
                f"Unknown source type: {self.source_type}. Valid options: {', '.join(SOURCE_TYPES)}"
            )
        if self.page_size <= 0:
            raise ValueError("page_size must be positive")
        if self.total_pages <= 0:
            raise ValueError("total_pages must be positive")
        if self.take_limit < 0:
            raise ValueError("take_limit must not be negative")
        if self.rows_per_group <= 0:
            raise ValueError("rows_per_group must be positive")
        self.output_file = Path(self.output_file)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load application configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            source_type=os.getenv("SOURCE_TYPE", "api"),  # api, s3
            page_size=int(os.getenv("PAGE_SIZE", "100")),
            total_pages=int(os.getenv("TOTAL_PAGES", "5")),
            take_limit=int(os.getenv("TAKE_LIMIT", "250")),
            rows_per_group=int(os.getenv("ROWS_PER_GROUP", "100")),
            output_file=Path(os.getenv("OUTPUT_FILE", "records.parquet")),
            compression=os.getenv("COMPRESSION", "snappy"),
            seed=int(os.getenv("SEED", "42")),
        )


def get_s3_config() -> S3Config:
    """Get S3 configuration."""
    return S3Config.from_env()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return AppConfig.from_env()
