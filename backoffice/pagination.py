"""Generic paging models and the single response-shape normalizer."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

T = TypeVar("T")
U = TypeVar("U")

SortDirection = Literal["asc", "desc"]


class ListQuery(BaseModel):
    """Paging, sorting, searching and filtering for one list view."""

    model_config = ConfigDict(frozen=True)

    page_index: int = Field(0, ge=0)
    page_size: int = Field(10, gt=0)
    sort_field: str = "id"
    sort_direction: SortDirection = "asc"
    search_text: str | None = None
    filters: dict[str, str] = Field(default_factory=dict)

    @field_validator("search_text")
    @classmethod
    def blank_search_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    def replace(self, **changes: Any) -> "ListQuery":
        """Return a validated copy with ``changes`` applied."""
        return ListQuery.model_validate({**self.model_dump(), **changes})

    def to_params(self, server_filters: Sequence[str] | None = None) -> dict[str, Any]:
        """Query-string parameters in the ``page/size/sort=field,direction`` convention."""
        params: dict[str, Any] = {
            "page": self.page_index,
            "size": self.page_size,
            "sort": f"{self.sort_field},{self.sort_direction}",
        }
        if self.search_text:
            params["search"] = self.search_text
        for key, value in self.filters.items():
            if server_filters is None or key in server_filters:
                params[key] = value
        return params


class PageEnvelope(BaseModel):
    """Page metadata as the API serializes it."""

    content: list[Any] = Field(default_factory=list)
    total_elements: int = Field(0, alias="totalElements")
    total_pages: int = Field(0, alias="totalPages")
    size: int = 0
    number: int = 0
    first: bool = True
    last: bool = True
    number_of_elements: int = Field(0, alias="numberOfElements")


class Page(BaseModel, Generic[T]):
    items: list[T]
    total_items: int
    total_pages: int
    page_index: int
    page_size: int
    is_first: bool
    is_last: bool

    @property
    def start_item(self) -> int:
        """1-based position of the first item shown, 0 when empty."""
        if not self.items:
            return 0
        return self.page_index * self.page_size + 1

    @property
    def end_item(self) -> int:
        if not self.items:
            return 0
        return self.start_item + len(self.items) - 1

    def with_items(self, items: list[U]) -> "Page[U]":
        """Same window and totals, different items (one per original item)."""
        if len(items) != len(self.items):
            raise ValueError("replacement items must match the page length")
        return Page[Any](**{**self.model_dump(exclude={"items"}), "items": items})


def count_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(total_items / page_size)


def build_page(items: list[T], total_items: int, page_index: int, page_size: int) -> Page[T]:
    """Assemble a page whose flags are derived from the totals."""

    total_pages = count_pages(total_items, page_size)
    return Page[Any](
        items=items,
        total_items=total_items,
        total_pages=total_pages,
        page_index=page_index,
        page_size=page_size,
        is_first=page_index == 0,
        is_last=page_index >= total_pages - 1,
    )


def page_from_items(items: Sequence[T], query: ListQuery) -> Page[T]:
    """Slice a complete, unpaginated result down to the requested page."""

    start = query.page_index * query.page_size
    window = list(items[start : start + query.page_size])
    return build_page(window, len(items), query.page_index, query.page_size)


def empty_page(query: ListQuery) -> Page[Any]:
    return build_page([], 0, query.page_index, query.page_size)


def normalize_page(
    payload: Any,
    query: ListQuery,
    parse_item: Callable[[Any], T] | None = None,
) -> Page[T]:
    """Resolve either response shape into a ``Page``.

    A bare JSON array is the complete result and is paged client-side.
    A mapping is read as a ``PageEnvelope``; its element count and page
    number are used and the page count is derived from them.
    ``parse_item`` turns each raw record into a model.
    """

    parse = parse_item or (lambda item: item)

    if isinstance(payload, list):
        return page_from_items([parse(item) for item in payload], query)

    if isinstance(payload, Mapping):
        try:
            envelope = PageEnvelope.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(f"Unrecognised page payload: {exc}") from exc
        return build_page(
            [parse(item) for item in envelope.content],
            envelope.total_elements,
            envelope.number,
            envelope.size or query.page_size,
        )

    raise ValueError(f"Unrecognised page payload of type {type(payload).__name__}")


def refilter_page(page: Page[T], predicate: Callable[[T], bool]) -> Page[T]:
    """Drop items failing ``predicate`` and recount the totals from what is left.

    The counts describe the filtered slice only, so when the filter cuts
    across page boundaries the totals are an approximation.
    """

    kept = [item for item in page.items if predicate(item)]
    return build_page(kept, len(kept), page.page_index, page.page_size)
