"""Capped, newest-first list of delivered events for display."""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterator, List, TypeVar

T = TypeVar("T")

DEFAULT_MAX_EVENTS = 50


class EventFeed(Generic[T]):
    """Keep at most ``max_events`` entries, evicting the oldest first."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1.")
        self._items: Deque[T] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._items.maxlen or 0

    def add(self, item: T) -> None:
        self._items.append(item)

    def clear(self) -> None:
        self._items.clear()

    def newest_first(self) -> List[T]:
        return list(reversed(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        """Iterate oldest to newest."""
        return iter(self._items)


__all__ = ["DEFAULT_MAX_EVENTS", "EventFeed"]
