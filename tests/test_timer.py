from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import pytest

from txt_timer.config import TimerConfig
from txt_timer.core.timer import (
    ISO_FORMAT,
    ISO_REGEX,
    MonotonicTimer,
    RegexTimer,
    Stamp,
    make_timer,
)


WALL = datetime(2024, 1, 1, tzinfo=timezone.utc)


def fake_clock(*readings: int):
    values = iter(readings)
    return lambda: next(values)


def make_regex_timer() -> RegexTimer:
    return RegexTimer(re.compile(r"(?P<time>[0-9: -]*\.\d{3})"), "%Y-%m-%d %H:%M:%S.%f")


def test_monotonic_first_stamp_is_timer_age() -> None:
    timer = MonotonicTimer(clock=fake_clock(1_000_000_000, 1_250_000_000), wall_clock=lambda: WALL)
    stamp = timer.stamp("a\n")
    assert stamp == Stamp(last=timedelta(milliseconds=250), total=timedelta(milliseconds=250), absolute=WALL)


def test_monotonic_delays_and_saturation() -> None:
    timer = MonotonicTimer(
        clock=fake_clock(0, 2_000_000, 5_000_000, 4_000_000), wall_clock=lambda: WALL
    )
    first = timer.stamp("a\n")
    second = timer.stamp("b\n")
    third = timer.stamp("c\n")
    assert first is not None and second is not None and third is not None
    assert second.last == timedelta(milliseconds=3)
    assert second.total == timedelta(milliseconds=5)
    # clock reading behind the previous one saturates at zero
    assert third.last == timedelta(0)
    assert third.total == timedelta(milliseconds=4)


def test_monotonic_uses_arrival_time_when_given() -> None:
    timer = MonotonicTimer(clock=fake_clock(0), wall_clock=lambda: WALL)
    stamp = timer.stamp("a\n", received_ns=3_000_000_000)
    assert stamp is not None
    assert stamp.last == timedelta(seconds=3)
    assert timer.previous == 3_000_000_000


def test_monotonic_real_clock_is_non_negative_and_non_decreasing() -> None:
    timer = MonotonicTimer()
    totals = []
    for _ in range(50):
        stamp = timer.stamp("x\n")
        assert stamp is not None
        assert stamp.last >= timedelta(0)
        totals.append(stamp.total)
    assert totals == sorted(totals)


def test_regex_first_stamp_is_zero() -> None:
    timer = make_regex_timer()
    stamp = timer.stamp("2022-12-12 08:19:00.000 a\n")
    parsed = datetime(2022, 12, 12, 8, 19, tzinfo=timezone.utc)
    assert stamp == Stamp(last=timedelta(0), total=timedelta(0), absolute=parsed)
    assert timer.epoch == parsed
    assert timer.previous == parsed


def test_regex_delays() -> None:
    timer = make_regex_timer()
    timer.stamp("2022-12-12 08:19:00.000 a\n")
    b = timer.stamp("2022-12-12 08:19:01.000 b\n")
    c = timer.stamp("2022-12-12 08:19:01.001 c\n")
    assert b is not None and c is not None
    assert (b.last, b.total) == (timedelta(seconds=1), timedelta(seconds=1))
    assert (c.last, c.total) == (timedelta(milliseconds=1), timedelta(seconds=1, milliseconds=1))


def test_regex_failure_leaves_state_unchanged() -> None:
    timer = make_regex_timer()
    timer.stamp("2022-12-12 08:19:00.000 a\n")
    epoch, previous = timer.epoch, timer.previous

    assert timer.stamp("no timestamp here\n") is None
    assert timer.stamp("9999-99-99 99:99:99.999 bad\n") is None
    assert (timer.epoch, timer.previous) == (epoch, previous)


def test_regex_failure_before_first_parse_keeps_epoch_unset() -> None:
    timer = make_regex_timer()
    assert timer.stamp("nothing\n") is None
    assert timer.epoch is None
    assert timer.previous is None


def test_regex_out_of_order_is_no_reading() -> None:
    timer = make_regex_timer()
    timer.stamp("2022-12-12 08:19:05.000 a\n")
    assert timer.stamp("2022-12-12 08:19:04.000 b\n") is None
    stamp = timer.stamp("2022-12-12 08:19:06.000 c\n")
    assert stamp is not None
    assert stamp.last == timedelta(seconds=1)


def test_regex_optional_group_not_participating() -> None:
    timer = RegexTimer(re.compile(r"at (?P<time>\d{2}:\d{2}:\d{2})?"), "%H:%M:%S")
    assert timer.stamp("at \n") is None
    assert timer.stamp("at 10:00:00\n") is not None


def test_regex_requires_time_group() -> None:
    with pytest.raises(ValueError, match="capturing group"):
        RegexTimer(re.compile(r"(?P<ime>\d+)"), "%S")


def test_iso_preset() -> None:
    timer = RegexTimer(re.compile(ISO_REGEX), ISO_FORMAT)
    timer.stamp("2022-12-12T08:19:00.000Z a\n")
    assert timer.stamp("2022-12-12 08:19:01.000 not iso\n") is None
    stamp = timer.stamp("2022-12-12T08:19:01.500Z b\n")
    assert stamp is not None
    assert stamp.last == timedelta(milliseconds=1500)


def test_make_timer_selects_strategy() -> None:
    assert isinstance(make_timer(TimerConfig()), MonotonicTimer)
    assert isinstance(make_timer(TimerConfig(iso=True)), RegexTimer)
    custom = make_timer(TimerConfig(regex=r"(?P<time>\d+)", format="%s"))
    assert isinstance(custom, RegexTimer)
    assert custom.fmt == "%s"


def test_stamp_ordering() -> None:
    small = Stamp(timedelta(seconds=1), timedelta(seconds=5))
    large = Stamp(timedelta(seconds=2), timedelta(seconds=2))
    tie_later = Stamp(timedelta(seconds=1), timedelta(seconds=6))
    assert small < large
    assert tie_later > small
    with_abs = Stamp(timedelta(seconds=1), timedelta(seconds=5), WALL)
    assert with_abs > small
    assert sorted([large, tie_later, small]) == [small, tie_later, large]
