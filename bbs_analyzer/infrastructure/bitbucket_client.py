"""Bitbucket Server REST API client implementation."""
import json
import logging
from typing import Any, Dict, List
from bbs_analyzer.domain.bitbucket_interface import IBitbucketClient
from bbs_analyzer.domain.exceptions import ResponseDecodeError
from bbs_analyzer.domain.models import Project, PullRequest, Repository, RepositorySize
from bbs_analyzer.infrastructure.paginator import DEFAULT_PAGE_LIMIT, Paginator
from bbs_analyzer.infrastructure.transport import BitbucketTransport


logger = logging.getLogger(__name__)


def _to_project(data: Dict[str, Any]) -> Project:
    return Project(
        key=data["key"],
        project_id=int(data.get("id", 0)),
        name=data.get("name", data["key"]),
        public=bool(data.get("public", False)),
        project_type=data.get("type", "NORMAL")
    )


def _to_repository(data: Dict[str, Any]) -> Repository:
    return Repository(
        repo_id=int(data["id"]),
        slug=data["slug"],
        name=data.get("name", data["slug"]),
        project=_to_project(data["project"]),
        public=bool(data.get("public", False)),
        archived=bool(data.get("archived", False)),
        forkable=bool(data.get("forkable", False)),
        state=data.get("state", ""),
        scm_id=data.get("scmId", "")
    )


def _to_pull_request(data: Dict[str, Any]) -> PullRequest:
    properties = data.get("properties") or {}
    return PullRequest(
        pr_id=int(data["id"]),
        comment_count=int(properties.get("commentCount", 0))
    )


def _load_object(body: str, what: str) -> Dict[str, Any]:
    if not body:
        raise ResponseDecodeError(f"No data was returned from the {what} endpoint.")
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ResponseDecodeError(f"Invalid JSON from the {what} endpoint: {e}") from e
    if not isinstance(data, dict):
        raise ResponseDecodeError(f"Expected an object from the {what} endpoint")
    return data


class BitbucketServerClient(IBitbucketClient):
    """Bitbucket Server REST client.

    Implements the IBitbucketClient port on top of a single transport. Listing
    endpoints go through the paginator; project lookup and repository sizes
    are single requests.
    """

    def __init__(self, transport: BitbucketTransport, page_limit: int = DEFAULT_PAGE_LIMIT):
        """Initialize Bitbucket client.

        Args:
            transport: Authenticated transport shared by every call
            page_limit: Items requested per page of a listing
        """
        self._transport = transport
        self._paginator = Paginator(transport, page_limit=page_limit)

    async def get_projects(self) -> List[Project]:
        logger.info("Looking up all projects")
        projects = await self._paginator.collect("/projects", _to_project)
        logger.info(f"Found {len(projects)} projects")
        return projects

    async def get_project(self, project_key: str) -> Project:
        """Fetch one project by key.

        Raises:
            TransportError: When the request fails
            ResponseDecodeError: When the body is empty or malformed
        """
        endpoint = f"/projects/{project_key}"
        logger.debug(f"Making HTTP request to {endpoint}")
        data = _load_object(await self._transport.api_get(endpoint), "project")
        try:
            return _to_project(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Malformed project {project_key}: {e!r}") from e

    async def get_repositories(self, project_key: str) -> List[Repository]:
        repositories = await self._paginator.collect(
            f"/projects/{project_key}/repos",
            _to_repository
        )
        logger.info(f"Found {len(repositories)} repositories in project {project_key}")
        return repositories

    async def get_repository_size(self, repository: Repository) -> RepositorySize:
        """Fetch repository and attachment sizes.

        The sizes endpoint lives outside the REST API prefix.
        """
        endpoint = f"/projects/{repository.project.key}/repos/{repository.slug}/sizes"
        data = _load_object(await self._transport.raw_get(endpoint), "sizes")
        try:
            return RepositorySize(
                repository=int(data.get("repository", 0)),
                attachments=int(data.get("attachments", 0))
            )
        except (TypeError, ValueError) as e:
            raise ResponseDecodeError(
                f"Malformed sizes for {repository.full_name}: {e!r}"
            ) from e

    async def get_pull_requests(self, repository: Repository) -> List[PullRequest]:
        return await self._paginator.collect(
            f"/projects/{repository.project.key}/repos/{repository.slug}/pull-requests?state=all",
            _to_pull_request
        )

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()
