"""Bitbucket API interface (port) for fetching project and repository data.

This is the anti-corruption layer that shields the domain from Bitbucket API specifics.
"""
from abc import ABC, abstractmethod
from typing import List
from bbs_analyzer.domain.models import Project, PullRequest, Repository, RepositorySize


class IBitbucketClient(ABC):
    """Abstract interface for Bitbucket Server API operations."""

    @abstractmethod
    async def get_projects(self) -> List[Project]:
        """Fetch every project visible to the configured user."""
        pass

    @abstractmethod
    async def get_project(self, project_key: str) -> Project:
        """Fetch a single project by key."""
        pass

    @abstractmethod
    async def get_repositories(self, project_key: str) -> List[Repository]:
        """Fetch the repository listing of one project.

        Args:
            project_key: Key of the owning project

        Returns:
            Repositories in the ``Listed`` state
        """
        pass

    @abstractmethod
    async def get_repository_size(self, repository: Repository) -> RepositorySize:
        """Fetch the disk size of a repository."""
        pass

    @abstractmethod
    async def get_pull_requests(self, repository: Repository) -> List[PullRequest]:
        """Fetch every pull request of a repository, in all states.

        Raises:
            PaginationError: When a page fails; carries the partial list
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
