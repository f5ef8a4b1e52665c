"""Checkpointed pagination shared by every exported resource.

On start the accumulated data and page cursor are read back from the store.
A cursor of -1 means the resource was fully drained and no fetch happens.
Otherwise paging resumes at the stored cursor; after each page the data and
the next cursor are re-saved in a single write, with -1 in place of the
cursor once the provider reports no further page.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from scm_migrate.logging import get_logger

from .keys import CURSOR_DONE, CURSOR_START, ResourceKind, data_key, page_key
from .store import CheckpointStore

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of a provider listing."""

    items: list[T] = field(default_factory=list)
    """Items on this page, in provider order."""

    next_page: int = 0
    """Next page number to request; 0 means the listing is exhausted."""


PageFetcher = Callable[[int], Awaitable[Page[T]]]


def load_cursor(store: CheckpointStore, scope: str, kind: ResourceKind) -> int:
    """Read the stored page cursor, defaulting to the first page."""
    value, found = store.get(page_key(scope, kind))
    if not found or value is None:
        return CURSOR_START
    return int(value)


def is_drained(store: CheckpointStore, scope: str, kind: ResourceKind) -> bool:
    """True if the resource was fully fetched in a previous run."""
    return load_cursor(store, scope, kind) == CURSOR_DONE


async def paginate_with_checkpoint(
    store: CheckpointStore,
    scope: str,
    kind: ResourceKind,
    fetch_page: PageFetcher[T],
    item_type: type[T] | Any,
) -> list[T]:
    """Fetch every page of a resource, resuming from the checkpoint.

    Args:
        store: Checkpoint store of the current run
        scope: Resource namespace (repository slug, org, or repo/PR)
        kind: Resource kind, used to build the page and data keys
        fetch_page: Coroutine factory returning the page for a page number
        item_type: Type of one item, used to re-decode cached data

    Returns:
        All items in provider order, cached items first

    Raises:
        CheckpointDecodeError: If the cached data has an unexpected shape
        Exception: Any error raised by fetch_page (the cursor is left untouched)
    """
    cursor_key = page_key(scope, kind)
    items_key = data_key(scope, kind)

    cached, _ = store.get_data(items_key, list[item_type])  # type: ignore[valid-type]
    items: list[T] = list(cached or [])

    cursor = load_cursor(store, scope, kind)
    if cursor == CURSOR_DONE:
        logger.debug("{}: {} loaded from checkpoint ({} items)", scope, kind.value, len(items))
        return items

    if cursor != CURSOR_START:
        logger.info(
            "{}: resuming {} at page {} ({} cached items)", scope, kind.value, cursor, len(items)
        )

    page_number = cursor
    while True:
        page = await fetch_page(page_number)
        items.extend(page.items)

        # Data and cursor go out in one write; an exhausted listing is marked
        # drained directly so no intermediate cursor reaches the file.
        next_cursor = page.next_page or CURSOR_DONE
        store.try_save_many({items_key: items, cursor_key: next_cursor})

        if next_cursor == CURSOR_DONE:
            return items
        page_number = next_cursor
