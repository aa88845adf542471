"""Text rendering of stamps and of the final maximals report.

Relayed lines and report bodies are written verbatim. Only the stamp prefix
line and the report heading go through rich, which drops the styling when
the output is not a terminal.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional, TextIO

from rich.console import Console
from rich.text import Text

from .core.processor import Entry
from .core.timer import Stamp


def make_console(file: TextIO) -> Console:
    return Console(file=file, highlight=False, soft_wrap=True, emoji=False, markup=False)


def seconds(value: timedelta) -> str:
    return f"{value.total_seconds():.4f}"


def delay_color(last: timedelta, color_range: float) -> str:
    """Green for no delay, red once the delay reaches half the color range."""
    scale = last.total_seconds() / color_range
    red = int(min(max(255.0 * (2.0 * scale), 0.0), 255.0))
    green = int(min(max(255.0 * (2.0 - 2.0 * scale), 0.0), 255.0))
    return f"rgb({red},{green},0)"


def rfc3339(value: datetime) -> str:
    """ISO 8601 text with as many fraction digits as the value needs: 0, 3 or 6."""
    if value.microsecond == 0:
        return value.isoformat(timespec="seconds")
    if value.microsecond % 1000 == 0:
        return value.isoformat(timespec="milliseconds")
    return value.isoformat(timespec="microseconds")


def stamp_text(stamp: Stamp, color_range: float) -> Text:
    text = Text.assemble(
        "Δ",
        (seconds(stamp.last), delay_color(stamp.last, color_range)),
        " @",
        (seconds(stamp.total), "blue"),
    )
    if stamp.absolute is not None:
        text.append(" ")
        text.append(rfc3339(stamp.absolute), style="bold white")
    return text


def print_stamp(console: Console, stamp: Stamp, color_range: float) -> None:
    console.print(stamp_text(stamp, color_range))


def format_entry(entry: Entry) -> str:
    header = f"Δ{seconds(entry.stamp.last)} @{seconds(entry.stamp.total)}\n"
    return header + "".join(entry.context) + "\n"


def format_report(entries: Iterable[Entry]) -> str:
    return "".join(format_entry(entry) + "\n" for entry in entries)


def write_report(
    entries: Iterable[Entry],
    writer: TextIO,
    output_path: Optional[Path] = None,
) -> None:
    """Write the report to `output_path` if given, else below a heading on `writer`."""
    report = format_report(entries)
    if output_path is not None:
        output_path.write_text(report, encoding="utf-8", errors="surrogateescape")
        return

    writer.write("\n")
    writer.flush()
    make_console(writer).print(Text.assemble(("Maximals", "bold yellow"), ":"))
    writer.write(report)
    writer.write("\n")
    writer.flush()
