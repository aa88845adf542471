from __future__ import annotations

from typing import Generic, Iterator, List, Optional, Protocol, Tuple, TypeVar


class _Comparable(Protocol):
    def __gt__(self, other: object) -> bool: ...


T = TypeVar("T", bound=_Comparable)


class Maximals(Generic[T]):
    """Keep the `capacity` largest elements seen so far, sorted highest first.

    Insertion position is found by binary search for the first retained
    element that is not strictly greater than the candidate. A candidate equal
    to a retained element therefore lands in front of it: among equals the
    most recent arrival is listed first.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self._capacity: int = capacity
        self._data: List[T] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def insert(self, element: T) -> Optional[T]:
        """Insert `element` if it ranks within the top `capacity`.

        Returns the stored element, or None when it was rejected.
        """
        idx = self._bisect(element)
        if idx >= self._capacity:
            return None
        if len(self._data) == self._capacity:
            self._data.pop()
        self._data.insert(idx, element)
        return element

    def _bisect(self, element: T) -> int:
        lo, hi = 0, len(self._data)
        while lo < hi:
            mid = (lo + hi) // 2
            if self._data[mid] > element:
                lo = mid + 1
            else:
                hi = mid
        return lo

    def iterate(self) -> Iterator[T]:
        return iter(tuple(self._data))

    def data(self) -> Tuple[T, ...]:
        return tuple(self._data)

    def clear(self) -> None:
        self._data.clear()

    def __iter__(self) -> Iterator[T]:
        return self.iterate()

    def __len__(self) -> int:
        return len(self._data)
