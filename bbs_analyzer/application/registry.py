"""Shared, order-preserving registry of every repository in a run."""
import asyncio
import logging
from typing import Dict, Iterable, Iterator, List, Set, Tuple
from bbs_analyzer.domain.models import Repository, RunTotals


logger = logging.getLogger(__name__)


class RepositoryRegistry:
    """Authoritative collection of repositories plus the run totals.

    Membership and order are fixed at construction. Enrichment jobs merge
    their snapshots back by repository id; one lock covers both the slot
    overwrite and the totals update since the totals invariant spans both.
    """

    def __init__(self, repositories: Iterable[Repository]):
        self._repositories: List[Repository] = list(repositories)
        self._index: Dict[int, int] = {}
        for position, repository in enumerate(self._repositories):
            # First listing wins if the server reports an id twice
            self._index.setdefault(repository.repo_id, position)
        self._merged: Set[int] = set()
        self._totals = RunTotals()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._repositories)

    def __iter__(self) -> Iterator[Repository]:
        return iter(tuple(self._repositories))

    @property
    def repositories(self) -> Tuple[Repository, ...]:
        return tuple(self._repositories)

    @property
    def totals(self) -> RunTotals:
        """Copy of the running totals."""
        return RunTotals(
            total_size=self._totals.total_size,
            total_pull_requests=self._totals.total_pull_requests,
            total_comments=self._totals.total_comments
        )

    def pending(self) -> List[Repository]:
        """Repositories that have not been enriched yet."""
        return [r for r in self._repositories if not r.enriched]

    async def merge(self, snapshot: Repository) -> bool:
        """Write an enriched snapshot back into the registry.

        Args:
            snapshot: Repository returned by ``with_statistics``

        Returns:
            True if merged, False if the snapshot had no matching entry or
            that entry was already enriched
        """
        async with self._lock:
            position = self._index.get(snapshot.repo_id)
            if position is None:
                logger.error(
                    f"Error finding batch repository in original list: {snapshot.name}"
                )
                return False

            if snapshot.repo_id in self._merged:
                logger.error(
                    f"Repository {snapshot.full_name} was already enriched; skipping duplicate result"
                )
                return False

            self._repositories[position] = snapshot
            self._merged.add(snapshot.repo_id)
            self._totals.add(snapshot)

        logger.debug(
            f"Merged {snapshot.full_name}: size={snapshot.size.repository} "
            f"pull_requests={snapshot.pull_request_count} comments={snapshot.comment_count}"
        )
        return True
