"""List view controller: query state and the latest page for one list.

The controller owns a ``ListQuery`` and the most recent ``Page`` fetched for
it. Every mutation of the query that can move the visible window (sort,
page size, filters, search) sends the view back to page 0 before fetching.

Fetches are not cancelled. Each one is numbered and only the result of the
newest is applied, so a slow response for an old query can never overwrite
a newer one. A failed fetch leaves the previous page on screen and records
the error; nothing is raised to the caller.

Filters listed in ``client_filters`` are ones the endpoint cannot apply.
They are applied to the fetched slice and the totals recounted from it,
which makes the page count approximate whenever a filter cuts across a
page boundary. ``server_applied`` tells which filters a fetcher has
already pushed to the endpoint for a query; those are not applied again.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel

from . import get_logger
from .api import ApiError
from .notifications import LoggingSink, NotificationSink, notify_error, notify_success
from .operations import Outcome, failure_title
from .pagination import ListQuery, Page, SortDirection, refilter_page

logger = get_logger(__name__)

T = TypeVar("T")

Status = Literal["idle", "loading", "error"]
Fetcher = Callable[[ListQuery], Awaitable[Page[Any]]]
Enricher = Callable[[Page[Any]], Awaitable[Page[Any]]]
Executor = Callable[[BaseModel], Awaitable[Outcome]]
ClientFilter = Callable[[Any, str], bool]
ServerApplied = Callable[[ListQuery, str], bool]

LOAD_ERROR_MESSAGE = "Failed to load {name}"


class ListController(Generic[T]):
    def __init__(
        self,
        fetcher: Fetcher,
        *,
        name: str = "items",
        query: ListQuery | None = None,
        client_filters: Mapping[str, ClientFilter] | None = None,
        server_applied: ServerApplied | None = None,
        enrich: Enricher | None = None,
        executor: Executor | None = None,
        sink: NotificationSink | None = None,
    ):
        self.fetcher = fetcher
        self.name = name
        self.query = query or ListQuery()
        self.client_filters = dict(client_filters or {})
        self.server_applied = server_applied
        self.enrich = enrich
        self.executor = executor
        self.sink = sink if sink is not None else LoggingSink()

        self.page: Page[T] | None = None
        self.status: Status = "idle"
        self.error: str | None = None
        self._generation = 0

    @property
    def is_loading(self) -> bool:
        return self.status == "loading"

    @property
    def items(self) -> list[T]:
        return self.page.items if self.page else []

    @property
    def total_pages(self) -> int:
        return self.page.total_pages if self.page else 0

    # Query mutations

    async def set_sort(self, field: str, direction: SortDirection) -> None:
        self.query = self.query.replace(sort_field=field, sort_direction=direction, page_index=0)
        await self.fetch()

    async def toggle_sort(self, field: str) -> None:
        """Header click: the active column flips direction, any other starts ascending."""
        if field == self.query.sort_field:
            direction = "desc" if self.query.sort_direction == "asc" else "asc"
        else:
            direction = "asc"
        await self.set_sort(field, direction)

    async def set_page(self, index: int) -> bool:
        """Move to page ``index``; out-of-range requests are ignored."""
        if not 0 <= index < self.total_pages:
            logger.debug("Ignoring page %s for %s (%s pages)", index, self.name, self.total_pages)
            return False
        self.query = self.query.replace(page_index=index)
        await self.fetch()
        return True

    async def set_page_size(self, size: int) -> None:
        self.query = self.query.replace(page_size=size, page_index=0)
        await self.fetch()

    async def set_filter(self, key: str, value: str | None) -> None:
        """Set or, with an empty value, clear one filter."""
        filters = dict(self.query.filters)
        if value:
            filters[key] = value
        else:
            filters.pop(key, None)
        self.query = self.query.replace(filters=filters, page_index=0)
        await self.fetch()

    def set_search(self, text: str | None) -> None:
        """Stage search text; nothing is requested until ``submit_search``."""
        self.query = self.query.replace(search_text=text, page_index=0)

    async def submit_search(self) -> None:
        await self.fetch()

    async def refresh(self) -> None:
        await self.fetch()

    # Fetching

    async def fetch(self) -> None:
        self._generation += 1
        generation = self._generation
        query = self.query
        self.status = "loading"

        try:
            page = await self.fetcher(query)
            page = self._post_filter(page, query)
            if self.enrich is not None:
                page = await self.enrich(page)
        except (ApiError, ValueError) as exc:
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded %s fetch: %s", self.name, exc)
                return
            self.status = "error"
            self.error = LOAD_ERROR_MESSAGE.format(name=self.name)
            logger.error("Error loading %s: %s", self.name, exc)
            return

        if generation != self._generation:
            logger.debug("Dropping stale %s page for %s", self.name, query)
            return

        self.page = page
        self.status = "idle"
        self.error = None
        logger.debug(
            "Loaded %s page %s/%s (%s items)",
            self.name,
            page.page_index + 1,
            page.total_pages,
            len(page.items),
        )

    def _post_filter(self, page: Page[Any], query: ListQuery) -> Page[Any]:
        active = [
            (self.client_filters[key], value)
            for key, value in query.filters.items()
            if key in self.client_filters
            and not (self.server_applied and self.server_applied(query, key))
        ]
        if not active:
            return page
        return refilter_page(page, lambda item: all(check(item, value) for check, value in active))

    # Mutations

    async def submit(self, action: BaseModel, reset_page: bool = False) -> bool:
        """Run one action, report the outcome and re-fetch on success.

        Returns ``True`` when the action went through. A rejected action is
        reported to the sink and leaves the displayed page as it was.
        """
        if self.executor is None:
            raise RuntimeError(f"{self.name} list has no action executor")

        try:
            outcome = await self.executor(action)
        except ApiError as exc:
            logger.warning("%s rejected: %s", type(action).__name__, exc.message)
            notify_error(self.sink, failure_title(action), exc.message)
            return False

        if reset_page:
            self.query = self.query.replace(page_index=0)
        await self.refresh()
        notify_success(self.sink, outcome.title, outcome.message)
        return True
