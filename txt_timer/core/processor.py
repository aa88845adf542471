from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .buffers import ContextWindow
from .maximals import Maximals
from .timer import Stamp, Timer


logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Entry:
    stamp: Stamp
    # Snapshot of the context window, excluded from ordering
    context: Tuple[str, ...] = field(default=(), compare=False)


class StreamProcessor:
    """Per-line driver: timer reading, context window, top-K retention.

    Every line occupies a context window slot, whether or not it produced a
    stamp. Only stamped lines are offered to the maximals.
    """

    def __init__(self, timer: Timer, count: int, lines_before: int) -> None:
        self.timer = timer
        self.window = ContextWindow(lines_before)
        self.maximals: Maximals[Entry] = Maximals(count)
        self.lines_seen: int = 0
        self.lines_stamped: int = 0

    def process(self, line: str, received_ns: Optional[int] = None) -> Optional[Stamp]:
        self.lines_seen += 1
        self.window.push(line)
        stamp = self.timer.stamp(line, received_ns)
        if stamp is None:
            return None
        self.lines_stamped += 1
        self.maximals.insert(Entry(stamp=stamp, context=self.window.snapshot()))
        return stamp

    def entries(self) -> List[Entry]:
        return list(self.maximals)

    def finish(self) -> List[Entry]:
        logger.debug(
            "Stream finished",
            extra={
                "lines_seen": self.lines_seen,
                "lines_stamped": self.lines_stamped,
                "retained": len(self.maximals),
            },
        )
        return self.entries()
