# app/modules/audit/history.py

from collections import deque
from itertools import islice
from typing import Deque, Generic, List, TypeVar

T = TypeVar("T")


class BoundedHistory(Generic[T]):
    """
    Fixed-capacity sequence, newest first.

    push() is O(1); once full, every push drops the oldest item.
    Not synchronized: callers hold their own lock.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._items: Deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen

    def push(self, item: T) -> None:
        self._items.appendleft(item)

    def newest(self, limit: int) -> List[T]:
        if limit <= 0:
            return []
        return list(islice(self._items, limit))

    def __len__(self) -> int:
        return len(self._items)
