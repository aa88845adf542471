from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import total_ordering
from re import Pattern
from typing import TYPE_CHECKING, Callable, Optional, Protocol, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from ..config import TimerConfig


logger = logging.getLogger(__name__)

TIME_GROUP = "time"

ISO_REGEX = r"(?P<time>[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3})Z"
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

_ZERO = timedelta(0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@total_ordering
@dataclass(frozen=True)
class Stamp:
    last: timedelta
    total: timedelta
    absolute: Optional[datetime] = None

    def _key(self) -> Tuple[timedelta, timedelta, bool, float]:
        # None sorts before any absolute time
        if self.absolute is None:
            return (self.last, self.total, False, 0.0)
        return (self.last, self.total, True, self.absolute.timestamp())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Stamp):
            return NotImplemented
        return self._key() < other._key()


class Timer(Protocol):
    def stamp(self, line: str, received_ns: Optional[int] = None) -> Optional[Stamp]:
        ...


class MonotonicTimer:
    """Measure the arrival delay between lines on a monotonic clock.

    Epoch and previous reading are both taken at construction, so the first
    stamp reports the age of the timer rather than zero.
    """

    def __init__(
        self,
        clock: Callable[[], int] = time.monotonic_ns,
        wall_clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        self._wall_clock = wall_clock
        now = clock()
        self.epoch: int = now
        self.previous: int = now

    def stamp(self, line: str, received_ns: Optional[int] = None) -> Optional[Stamp]:
        now = received_ns if received_ns is not None else self._clock()
        last = max(0, now - self.previous)
        total = max(0, now - self.epoch)
        self.previous = now
        return Stamp(
            last=timedelta(microseconds=last // 1000),
            total=timedelta(microseconds=total // 1000),
            absolute=self._wall_clock(),
        )


class RegexTimer:
    """Take timestamps from the line text instead of the arrival time.

    Lines that do not match, fail to parse, or step backwards in time yield
    no stamp and leave the timer state untouched.
    """

    def __init__(self, pattern: Pattern[str], fmt: str) -> None:
        if TIME_GROUP not in pattern.groupindex:
            raise ValueError("regex must have a `(?P<time>exp)` capturing group")
        self.pattern = pattern
        self.fmt = fmt
        self.epoch: Optional[datetime] = None
        self.previous: Optional[datetime] = None

    def parse(self, line: str) -> Optional[datetime]:
        match = self.pattern.search(line)
        if match is None:
            return None
        text = match.group(TIME_GROUP)
        if text is None:
            return None
        try:
            parsed = datetime.strptime(text, self.fmt)
        except ValueError:
            logger.debug("Unparsable timestamp", extra={"text": text, "format": self.fmt})
            return None
        return parsed.replace(tzinfo=timezone.utc)

    def stamp(self, line: str, received_ns: Optional[int] = None) -> Optional[Stamp]:
        parsed = self.parse(line)
        if parsed is None:
            return None

        if self.epoch is None or self.previous is None:
            self.epoch = parsed
            self.previous = parsed
            return Stamp(last=_ZERO, total=_ZERO, absolute=parsed)

        last = parsed - self.previous
        total = parsed - self.epoch
        if last < _ZERO or total < _ZERO:
            logger.debug("Timestamp out of order", extra={"timestamp": parsed.isoformat()})
            return None

        self.previous = parsed
        return Stamp(last=last, total=total, absolute=parsed)


def make_timer(config: "TimerConfig") -> Timer:
    """Select the timer strategy once, from validated configuration."""
    if config.iso:
        logger.debug("Using ISO timestamp extraction")
        return RegexTimer(re.compile(ISO_REGEX), ISO_FORMAT)
    if config.regex is not None and config.format is not None:
        logger.debug("Using regex timestamp extraction", extra={"regex": config.regex.pattern})
        return RegexTimer(config.regex, config.format)
    logger.debug("Using monotonic arrival timer")
    return MonotonicTimer()
