"""Tests for the analyzer service with an in-memory Bitbucket client."""
import asyncio
from typing import Dict, Iterable, List, Optional
import pytest
from bbs_analyzer.application.analyzer_service import AnalyzerService
from bbs_analyzer.domain.bitbucket_interface import IBitbucketClient
from bbs_analyzer.domain.exceptions import (
    CollectionError,
    PaginationError,
    ReportError,
    TransportError
)
from bbs_analyzer.domain.models import Project, PullRequest, Repository, RepositorySize
from bbs_analyzer.domain.report_interface import IReportWriter


ALPHA = Project(key="ALPHA", project_id=1, name="Alpha")
BETA = Project(key="BETA", project_id=2, name="Beta")


def listed(repo_id: int, project: Project) -> Repository:
    return Repository(repo_id=repo_id, slug=f"repo-{repo_id}", name=f"Repo {repo_id}", project=project)


class FakeBitbucketClient(IBitbucketClient):
    """In-memory client; failures are injected per repository id."""

    def __init__(
        self,
        repositories: Dict[str, List[Repository]],
        sizes: Dict[int, int],
        pull_requests: Optional[Dict[int, List[PullRequest]]] = None,
        failing_sizes: Iterable[int] = (),
        failing_pull_requests: Optional[Dict[int, List[PullRequest]]] = None
    ):
        self.repositories = repositories
        self.sizes = sizes
        self.pull_requests = pull_requests or {}
        self.failing_sizes = set(failing_sizes)
        self.failing_pull_requests = failing_pull_requests or {}
        self.projects = [p for p in (ALPHA, BETA) if p.key in repositories]
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def get_projects(self) -> List[Project]:
        return list(self.projects)

    async def get_project(self, project_key: str) -> Project:
        for project in self.projects:
            if project.key == project_key:
                return project
        raise TransportError("HTTP 404", url=f"/projects/{project_key}", status=404)

    async def get_repositories(self, project_key: str) -> List[Repository]:
        return list(self.repositories[project_key])

    async def get_repository_size(self, repository: Repository) -> RepositorySize:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if repository.repo_id in self.failing_sizes:
                raise TransportError("HTTP 500", url="/sizes", status=500)
            return RepositorySize(repository=self.sizes[repository.repo_id])
        finally:
            self.in_flight -= 1

    async def get_pull_requests(self, repository: Repository) -> List[PullRequest]:
        if repository.repo_id in self.failing_pull_requests:
            raise PaginationError("page 2 failed", items=self.failing_pull_requests[repository.repo_id])
        return list(self.pull_requests.get(repository.repo_id, []))

    async def close(self) -> None:
        self.closed = True


class MemoryReportWriter(IReportWriter):
    def __init__(self, fail: bool = False):
        self.rows: List[Repository] = []
        self.fail = fail

    @property
    def destination(self) -> str:
        return "memory"

    def write_repositories(self, repositories: Iterable[Repository]) -> int:
        if self.fail:
            raise ReportError("disk full")
        self.rows = list(repositories)
        return len(self.rows)


def two_project_client(**kwargs) -> FakeBitbucketClient:
    return FakeBitbucketClient(
        repositories={
            "ALPHA": [listed(1, ALPHA), listed(2, ALPHA), listed(3, ALPHA)],
            "BETA": [listed(4, BETA), listed(5, BETA)],
        },
        sizes={1: 10, 2: 20, 3: 30, 4: 5, 5: 7},
        **kwargs
    )


@pytest.mark.asyncio
async def test_run_enriches_every_repository():
    """Test a full run over two projects."""
    client = two_project_client(pull_requests={2: [PullRequest(1, 3), PullRequest(2, 1)], 5: [PullRequest(3, 2)]})
    writer = MemoryReportWriter()
    service = AnalyzerService(client, writer, threads=2)

    result = await service.run()

    assert [r.repo_id for r in result.repositories] == [1, 2, 3, 4, 5]
    assert all(r.enriched for r in result.repositories)
    assert result.totals.total_size == 72
    assert result.totals.total_pull_requests == 3
    assert result.totals.total_comments == 6
    assert result.totals.total_size == sum(r.size.repository for r in result.repositories)
    assert result.batches == 3
    assert result.errors_encountered == 0
    assert len(result.projects) == 2
    assert [r.repo_id for r in writer.rows] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_run_respects_thread_width():
    """Test that enrichment never exceeds the configured width."""
    client = two_project_client()
    service = AnalyzerService(client, MemoryReportWriter(), threads=2)

    await service.run()

    assert client.peak_in_flight == 2


@pytest.mark.asyncio
async def test_size_failure_is_isolated():
    """Test that one size failure leaves that repository at zero and others intact."""
    client = two_project_client(failing_sizes=[2])
    service = AnalyzerService(client, MemoryReportWriter(), threads=3)

    result = await service.run()

    by_id = {r.repo_id: r for r in result.repositories}
    assert by_id[2].enriched is True
    assert by_id[2].size.repository == 0
    assert by_id[1].size.repository == 10
    assert by_id[3].size.repository == 30
    assert result.totals.total_size == 52
    assert result.errors_encountered == 1


@pytest.mark.asyncio
async def test_pull_request_failure_keeps_partial_list():
    """Test that a failed pull request listing keeps the pages that arrived."""
    client = two_project_client(failing_pull_requests={4: [PullRequest(7, 5)]})
    service = AnalyzerService(client, MemoryReportWriter(), threads=3)

    result = await service.run()

    by_id = {r.repo_id: r for r in result.repositories}
    assert by_id[4].pull_request_count == 1
    assert by_id[4].comment_count == 5
    assert result.totals.total_comments == 5
    assert result.errors_encountered == 1


@pytest.mark.asyncio
async def test_single_project_mode():
    """Test that a project key limits the run to that project."""
    client = two_project_client()
    service = AnalyzerService(client, MemoryReportWriter(), threads=3, project_key="BETA")

    result = await service.run()

    assert [p.key for p in result.projects] == ["BETA"]
    assert [r.repo_id for r in result.repositories] == [4, 5]
    assert result.totals.total_size == 12


@pytest.mark.asyncio
async def test_unknown_project_is_fatal():
    """Test that a failed project lookup aborts the run."""
    service = AnalyzerService(two_project_client(), MemoryReportWriter(), project_key="NOPE")

    with pytest.raises(CollectionError, match="Error looking up projects"):
        await service.run()


@pytest.mark.asyncio
async def test_no_projects_is_fatal():
    """Test that an empty project listing aborts the run."""
    client = FakeBitbucketClient(repositories={}, sizes={})
    service = AnalyzerService(client, MemoryReportWriter())

    with pytest.raises(CollectionError, match="No projects were found"):
        await service.run()


@pytest.mark.asyncio
async def test_repository_listing_failure_is_fatal():
    """Test that a failed repository listing aborts the run."""
    client = two_project_client()

    async def broken_listing(project_key: str) -> List[Repository]:
        raise PaginationError("HTTP 500", items=[])

    client.get_repositories = broken_listing
    service = AnalyzerService(client, MemoryReportWriter())

    with pytest.raises(CollectionError, match="Error looking up repositories"):
        await service.run()


@pytest.mark.asyncio
async def test_report_failure_is_fatal():
    """Test that a report write failure propagates after collection."""
    service = AnalyzerService(two_project_client(), MemoryReportWriter(fail=True))

    with pytest.raises(ReportError):
        await service.run()


@pytest.mark.asyncio
async def test_status_messages_and_close():
    """Test that progress messages are emitted and close reaches the client."""
    client = two_project_client()
    messages: List[str] = []
    service = AnalyzerService(client, MemoryReportWriter(), threads=3, status=messages.append)

    await service.run()
    await service.close()

    assert "Running repository analysis batch #1 (3 threads)..." in messages
    assert "Running repository analysis batch #2 (2 threads)..." in messages
    assert client.closed is True


def test_invalid_thread_count_is_rejected():
    """Test that the scheduler width bound applies to the service."""
    with pytest.raises(ValueError):
        AnalyzerService(two_project_client(), MemoryReportWriter(), threads=11)
