"""Simulated paginated API serving fake person records."""

import logging
import time
from typing import Any, Dict, List, Optional

from faker import Faker

from .models import PageResponse
from .protocols import LoggerProtocol


class FakeRecordClient:
    """
    Paginated client returning Faker-generated records.

    Each page is seeded from ``seed`` and the page number, so a page holds the
    same records no matter how many times or in which order it is fetched.
    """

    def __init__(
        self,
        page_size: int = 100,
        total_pages: int = 5,
        seed: int = 42,
        latency_seconds: float = 0.0,
        logger: Optional[LoggerProtocol] = None,
    ):
        """
        Initialize API client.

        Args:
            page_size: Number of records per page
            total_pages: Total number of pages available
            seed: Base seed for record generation
            latency_seconds: Simulated API latency
            logger: Logger instance (defaults to module logger)
        """
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if total_pages <= 0:
            raise ValueError("total_pages must be positive")
        self.page_size = page_size
        self.total_pages = total_pages
        self.seed = seed
        self.latency_seconds = latency_seconds
        self.faker = Faker()
        self.pages_fetched = 0
        self._logger = logger or logging.getLogger(__name__)

    def fetch_page(self, page: int) -> PageResponse:
        """
        Fetch a single page of records.

        Args:
            page: Page number to fetch, starting at 1

        Returns:
            PageResponse containing records and metadata
        """
        if page < 1 or page > self.total_pages:
            raise IndexError(f"page {page} out of range 1..{self.total_pages}")

        self._logger.debug(f"Fetching page {page}...")
        if self.latency_seconds:
            time.sleep(self.latency_seconds)

        self.pages_fetched += 1
        return PageResponse(
            data=self._generate_records_for_page(page),
            page=page,
            page_size=self.page_size,
            has_more=page < self.total_pages,
        )

    def _generate_records_for_page(self, page: int) -> List[Dict[str, Any]]:
        """Generate record data for a specific page."""
        self.faker.seed_instance(self.seed * 100_003 + page)
        start_id = (page - 1) * self.page_size

        records = []
        for i in range(self.page_size):
            records.append(
                {
                    "id": start_id + i,
                    "name": self.faker.name(),
                    "email": self.faker.email(),
                    "city": self.faker.city(),
                    "country": self.faker.country(),
                    "job": self.faker.job(),
                    "company": self.faker.company(),
                    "amount": round(self.faker.pyfloat(min_value=10, max_value=5000, right_digits=2), 2),
                }
            )
        return records
