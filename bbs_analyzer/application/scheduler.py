"""Fixed-size batch scheduler for concurrent per-repository jobs."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WIDTH = 10


def plan_batches(items: Sequence[T], width: int) -> List[List[T]]:
    """Split items into consecutive batches of at most ``width``.

    Seven items at width three give batches of 3, 3 and 1.
    """
    if width < 1:
        raise ValueError(f"Batch width must be at least 1, got {width}")
    items = list(items)
    return [items[i:i + width] for i in range(0, len(items), width)]


@dataclass
class ScheduleSummary:
    """What happened across all generations of a scheduler run."""
    batches: int = 0
    completed: int = 0
    failed: int = 0
    results: List[Any] = field(default_factory=list)


class BatchScheduler:
    """Runs jobs in sequential generations of concurrent tasks.

    Each generation holds at most ``width`` tasks and must fully drain
    before the next one starts, so the server never sees more than
    ``width`` enrichment jobs at once.
    """

    def __init__(self, width: int):
        """Initialize scheduler.

        Args:
            width: Concurrent jobs per generation (1 to MAX_WIDTH)
        """
        if not 1 <= width <= MAX_WIDTH:
            raise ValueError(f"Batch width must be between 1 and {MAX_WIDTH}, got {width}")
        self._width = width

    @property
    def width(self) -> int:
        return self._width

    async def run(
        self,
        items: Sequence[T],
        job: Callable[[T], Awaitable[Any]],
        on_batch: Optional[Callable[[int, int], None]] = None
    ) -> ScheduleSummary:
        """Process every item, one generation at a time.

        Args:
            items: Work items, processed in order
            job: Coroutine function run once per item
            on_batch: Called with (batch number, batch size) before each generation

        Returns:
            ScheduleSummary with per-item results in item order; a job that
            raised contributes its exception instead of a result
        """
        summary = ScheduleSummary()

        for batch_number, batch in enumerate(plan_batches(items, self._width), start=1):
            if len(batch) < self._width:
                logger.debug(
                    f"Setting number of threads to {len(batch)} because there are "
                    f"only {len(batch)} repositories left."
                )
            logger.debug(f"Running batch #{batch_number} ({len(batch)} threads)")
            if on_batch is not None:
                on_batch(batch_number, len(batch))

            tasks = [asyncio.ensure_future(job(item)) for item in batch]

            # Wait for the whole generation before releasing the next one
            results = await asyncio.gather(*tasks, return_exceptions=True)

            for item, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error(f"Job for {item!r} failed: {result}", exc_info=result)
                    summary.failed += 1
                else:
                    summary.completed += 1
                summary.results.append(result)

            summary.batches = batch_number

        logger.info(
            f"Scheduler finished {summary.completed + summary.failed} jobs in "
            f"{summary.batches} batches ({summary.failed} failed)"
        )
        return summary
