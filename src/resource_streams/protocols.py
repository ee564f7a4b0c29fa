"""Protocol definitions for dependency inversion."""

from typing import Protocol

from .models import PageResponse


class PageClient(Protocol):
    """Protocol for paginated clients consumed by ``sources.paginated``."""

    def fetch_page(self, page: int) -> PageResponse:
        """Fetch a single page of data."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging."""

    def debug(self, message: str, *args, **kwargs) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, *args, **kwargs) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, *args, **kwargs) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, *args, **kwargs) -> None:
        """Log error message."""
        ...
