"""Analyzer service orchestrating the Bitbucket inventory run."""
import logging
import time
from typing import Callable, List, Optional
from bbs_analyzer.application.registry import RepositoryRegistry
from bbs_analyzer.application.scheduler import BatchScheduler, ScheduleSummary
from bbs_analyzer.domain.bitbucket_interface import IBitbucketClient
from bbs_analyzer.domain.exceptions import BitbucketAPIError, CollectionError, PaginationError
from bbs_analyzer.domain.models import (
    AnalysisResult,
    Project,
    PullRequest,
    Repository,
    RepositorySize
)
from bbs_analyzer.domain.report_interface import IReportWriter


logger = logging.getLogger(__name__)


class AnalyzerService:
    """Application service for inventorying a Bitbucket Server instance.

    Orchestrates the interaction between the Bitbucket API and the report.
    Collection failures are fatal; enrichment failures are logged and leave
    the affected repository at zero values.
    """

    def __init__(
        self,
        bitbucket_client: IBitbucketClient,
        report_writer: IReportWriter,
        threads: int = 3,
        project_key: Optional[str] = None,
        status: Optional[Callable[[str], None]] = None
    ):
        """Initialize analyzer service.

        Args:
            bitbucket_client: Bitbucket API client implementation
            report_writer: Report writer implementation
            threads: Number of repositories enriched concurrently per batch
            project_key: Restrict the run to one project instead of all
            status: Receives short progress messages for display
        """
        self._client = bitbucket_client
        self._report_writer = report_writer
        self._scheduler = BatchScheduler(threads)
        self._project_key = project_key
        self._status = status
        self._errors = 0

    def _report_status(self, message: str) -> None:
        logger.debug(message)
        if self._status is not None:
            self._status(message)

    async def collect_projects(self) -> List[Project]:
        """Fetch the configured project, or every project.

        Raises:
            CollectionError: When projects cannot be looked up or none exist
        """
        try:
            if self._project_key:
                self._report_status(f"Looking up project {self._project_key}...")
                projects = [await self._client.get_project(self._project_key)]
            else:
                self._report_status("Looking up projects...")
                projects = await self._client.get_projects()
        except BitbucketAPIError as e:
            raise CollectionError(f"Error looking up projects: {e}") from e

        if not projects:
            raise CollectionError("No projects were found to look up repositories for.")

        return projects

    async def collect_repositories(self, projects: List[Project]) -> RepositoryRegistry:
        """List the repositories of every project, in project order.

        Raises:
            CollectionError: When any project's listing fails
        """
        repositories: List[Repository] = []

        for project in projects:
            self._report_status(f"Looking up repositories in project {project.key}...")
            try:
                repositories.extend(await self._client.get_repositories(project.key))
            except BitbucketAPIError as e:
                raise CollectionError(f"Error looking up repositories: {e}") from e

        logger.info(f"Collected {len(repositories)} repositories from {len(projects)} projects")
        return RepositoryRegistry(repositories)

    async def enrich_repository(self, registry: RepositoryRegistry, repository: Repository) -> bool:
        """Fetch statistics for one repository and merge them into the registry.

        Never raises for API failures: a missing size stays zero and a failed
        pull request listing keeps whatever pages arrived.

        Returns:
            True if the result was merged into the registry
        """
        size = RepositorySize()
        try:
            size = await self._client.get_repository_size(repository)
        except BitbucketAPIError as e:
            logger.error(f"Error looking up repository size for {repository.full_name}: {e}")
            self._errors += 1

        pull_requests: List[PullRequest] = []
        try:
            pull_requests = await self._client.get_pull_requests(repository)
        except PaginationError as e:
            logger.error(
                f"Error looking up repository pull requests for {repository.full_name}: {e}"
            )
            pull_requests = list(e.items)
            self._errors += 1
        except BitbucketAPIError as e:
            logger.error(
                f"Error looking up repository pull requests for {repository.full_name}: {e}"
            )
            self._errors += 1

        merged = await registry.merge(repository.with_statistics(size, pull_requests))
        if not merged:
            self._errors += 1
        return merged

    async def enrich_repositories(self, registry: RepositoryRegistry) -> ScheduleSummary:
        """Enrich every repository in fixed-size concurrent batches."""

        def on_batch(batch_number: int, batch_size: int) -> None:
            self._report_status(
                f"Running repository analysis batch #{batch_number} ({batch_size} threads)..."
            )

        async def job(repository: Repository) -> bool:
            return await self.enrich_repository(registry, repository)

        summary = await self._scheduler.run(registry.repositories, job, on_batch=on_batch)
        self._errors += summary.failed
        return summary

    async def run(self) -> AnalysisResult:
        """Collect, enrich and report.

        Returns:
            AnalysisResult with the final registry snapshot and totals

        Raises:
            CollectionError: When projects or repositories cannot be listed
            ReportError: When the report cannot be written
        """
        start_time = time.time()
        self._errors = 0

        logger.info("Starting Bitbucket Server analysis")

        projects = await self.collect_projects()
        registry = await self.collect_repositories(projects)
        summary = await self.enrich_repositories(registry)

        pending = registry.pending()
        if pending:
            logger.warning(
                f"{len(pending)} repositories were not enriched: "
                f"{', '.join(r.full_name for r in pending)}"
            )

        self._report_status(f"Writing results to {self._report_writer.destination}...")
        self._report_writer.write_repositories(registry.repositories)

        duration = time.time() - start_time
        totals = registry.totals

        logger.info(
            f"Analysis completed: {len(registry)} repositories, "
            f"{totals.total_pull_requests} pull requests, {totals.total_comments} comments "
            f"in {duration:.2f} seconds ({self._errors} errors)"
        )

        return AnalysisResult(
            projects=tuple(projects),
            repositories=registry.repositories,
            totals=totals,
            batches=summary.batches,
            errors_encountered=self._errors,
            duration_seconds=duration,
            output_file=self._report_writer.destination
        )

    async def close(self) -> None:
        """Close connections."""
        await self._client.close()
