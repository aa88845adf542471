from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Tuple


class ContextWindow:
    """Lookback buffer holding the current line plus up to `lines_before` predecessors.
    """

    def __init__(self, lines_before: int) -> None:
        if lines_before < 0:
            raise ValueError("lines_before must be >= 0")
        self._lines_before: int = lines_before
        self._buffer: Deque[str] = deque(maxlen=lines_before + 1)

    def push(self, line: str) -> None:
        self._buffer.append(line)

    def size(self) -> int:
        return len(self._buffer)

    def capacity(self) -> int:
        return self._lines_before + 1

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(self._buffer)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._buffer))
