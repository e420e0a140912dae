"""Domain models representing core business entities."""
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class Project:
    """Immutable domain entity representing a Bitbucket project."""
    key: str
    project_id: int
    name: str
    public: bool = False
    project_type: str = "NORMAL"


@dataclass(frozen=True)
class PullRequest:
    """A pull request of one repository, reduced to what the report needs."""
    pr_id: int
    comment_count: int = 0


@dataclass(frozen=True)
class RepositorySize:
    """Disk usage of a repository in bytes, as reported by the sizes endpoint."""
    repository: int = 0
    attachments: int = 0


@dataclass(frozen=True)
class Repository:
    """Immutable domain entity representing a Bitbucket repository.

    A repository starts out ``Listed``: only the fields of the listing
    endpoint are set. ``with_statistics`` returns the ``Enriched`` copy that
    carries size, pull requests and the comment total.
    """
    repo_id: int
    slug: str
    name: str
    project: Project
    public: bool = False
    archived: bool = False
    forkable: bool = False
    state: str = ""
    scm_id: str = ""
    size: RepositorySize = field(default_factory=RepositorySize)
    pull_requests: Tuple[PullRequest, ...] = ()
    comment_count: int = 0
    enriched: bool = False

    @property
    def full_name(self) -> str:
        """Returns the full repository name (PROJECT/slug)."""
        return f"{self.project.key}/{self.slug}"

    @property
    def pull_request_count(self) -> int:
        return len(self.pull_requests)

    def with_statistics(
        self,
        size: RepositorySize,
        pull_requests: Sequence[PullRequest]
    ) -> 'Repository':
        """Returns the enriched copy of this repository.

        The comment count is summed here, once, over the given pull requests.
        """
        pull_requests = tuple(pull_requests)
        return replace(
            self,
            size=size,
            pull_requests=pull_requests,
            comment_count=sum(pr.comment_count for pr in pull_requests),
            enriched=True
        )


@dataclass
class RunTotals:
    """Running totals over every enriched repository of a run."""
    total_size: int = 0
    total_pull_requests: int = 0
    total_comments: int = 0

    def add(self, repository: Repository) -> None:
        self.total_size += repository.size.repository
        self.total_pull_requests += repository.pull_request_count
        self.total_comments += repository.comment_count


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run."""
    projects: Tuple[Project, ...]
    repositories: Tuple[Repository, ...]
    totals: RunTotals
    batches: int
    errors_encountered: int
    duration_seconds: float
    output_file: Optional[str] = None
