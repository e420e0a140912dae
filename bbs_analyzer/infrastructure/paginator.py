"""Cursor-based page walker for Bitbucket Server listing endpoints."""
import json
import logging
from typing import Any, Callable, Dict, List, TypeVar
from bbs_analyzer.domain.exceptions import (
    BitbucketAPIError,
    PaginationError,
    ResponseDecodeError
)
from bbs_analyzer.infrastructure.transport import BitbucketTransport


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_LIMIT = 100


def decode_page(body: str) -> Dict[str, Any]:
    """Parse one ``{values, isLastPage, nextPageStart}`` envelope.

    Raises:
        ResponseDecodeError: When the body is not a valid page
    """
    try:
        page = json.loads(body)
    except ValueError as e:
        raise ResponseDecodeError(f"Page is not valid JSON: {e}") from e

    if not isinstance(page, dict) or not isinstance(page.get("values", []), list):
        raise ResponseDecodeError("Page has no 'values' list")

    is_last_page = page.get("isLastPage", True)
    if not is_last_page and not isinstance(page.get("nextPageStart"), int):
        raise ResponseDecodeError("Page is not the last one but has no 'nextPageStart'")

    return page


class Paginator:
    """Collects every item of a paginated listing into one list.

    The first page becomes the collection verbatim. Each later page is
    placed in front of what was collected so far, so pages P1, P2, P3 come
    back as P3 + P2 + P1.
    """

    def __init__(self, transport: BitbucketTransport, page_limit: int = DEFAULT_PAGE_LIMIT):
        self._transport = transport
        self._page_limit = page_limit

    def _page_endpoint(self, endpoint: str, start: int) -> str:
        separator = "&" if "?" in endpoint else "?"
        return f"{endpoint}{separator}limit={self._page_limit}&start={start}"

    async def collect(self, endpoint: str, decode: Callable[[Dict[str, Any]], T]) -> List[T]:
        """Walk all pages of ``endpoint``.

        Args:
            endpoint: REST API endpoint, optionally with its own query string
            decode: Turns one raw item of ``values`` into a domain object

        Returns:
            Every item across all pages

        Raises:
            PaginationError: On any transport or decode failure; carries the
                items accumulated before the failing page
        """
        items: List[T] = []
        start = 0

        while True:
            page_endpoint = self._page_endpoint(endpoint, start)
            logger.debug(f"Making HTTP request to {page_endpoint}")

            try:
                page = decode_page(await self._transport.api_get(page_endpoint))
                values = [decode(value) for value in page.get("values", [])]
            except BitbucketAPIError as e:
                raise PaginationError(f"Error paginating {endpoint}: {e}", items=items) from e
            except (KeyError, TypeError, ValueError) as e:
                raise PaginationError(
                    f"Error paginating {endpoint}: malformed item ({e!r})",
                    items=items
                ) from e

            # First page sets the collection, later pages go in front
            if not items:
                items = values
            else:
                items = values + items

            if page.get("isLastPage", True):
                break

            logger.debug("Not the last page. Looking up next page.")
            start = page["nextPageStart"]

        return items
