"""Report interface (port) for emitting the inventory.

This is the port in hexagonal architecture that the infrastructure layer implements.
"""
from abc import ABC, abstractmethod
from typing import Iterable
from bbs_analyzer.domain.models import Repository


class IReportWriter(ABC):
    """Abstract interface for writing the repository inventory."""

    REPORT_HEADER = (
        "project", "repository", "size", "pull_requests",
        "comments", "archived", "public"
    )

    @property
    @abstractmethod
    def destination(self) -> str:
        """Where the report ends up, for display."""
        pass

    @abstractmethod
    def write_repositories(self, repositories: Iterable[Repository]) -> int:
        """Write one row per repository, in the given order.

        Args:
            repositories: Enriched repositories in registry order

        Returns:
            Number of rows written (header excluded)

        Raises:
            ReportError: When the destination cannot be written
        """
        pass
