"""Core primitives: timers, context window, top-K retention, stream processing.

A stamp carries the delay since the previous timestamped line and since the
first one. The stream processor keeps the largest delays together with the
lines that led up to them.
"""

from .buffers import ContextWindow
from .maximals import Maximals
from .processor import Entry, StreamProcessor
from .timer import MonotonicTimer, RegexTimer, Stamp, Timer, make_timer

__all__ = [
    "ContextWindow",
    "Entry",
    "Maximals",
    "MonotonicTimer",
    "RegexTimer",
    "Stamp",
    "StreamProcessor",
    "Timer",
    "make_timer",
]
