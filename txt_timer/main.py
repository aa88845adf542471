from __future__ import annotations

import logging
import os
import signal
import sys
from pathlib import Path
from typing import Dict, List, Optional

import typer
from pydantic import ValidationError

from .config import EnvSettings, RunConfig, build_run_config, first_error_message
from .core.processor import Entry, StreamProcessor
from .core.timer import make_timer
from .relay import InputReadError, Relay, pass_bytes_through
from .render import write_report
from .utils.logging import setup_logging


logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_stop_handlers(relay: Relay) -> Dict[int, object]:
    def handle_signal(signum, frame):  # noqa: ANN001, D401
        if relay.stopping():
            # Second request: do not wait for the drain
            raise SystemExit(128 + signum)
        logger.info("Stop requested", extra={"signal": signum})
        relay.stop()

    previous = {}
    for sig in _STOP_SIGNALS:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, handle_signal)
    return previous


def _restore_handlers(previous: Dict[int, object]) -> None:
    for sig, handler in previous.items():
        if handler is not None:
            signal.signal(sig, handler)  # type: ignore[arg-type]


def _silence_stdout() -> None:
    # Keep the interpreter from failing again when it flushes stdout at exit
    try:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
    except (OSError, ValueError):
        pass


def run_stream(config: RunConfig, queue_size: int = 1024) -> List[Entry]:
    pass_bytes_through(sys.stdin)
    pass_bytes_through(sys.stdout)
    processor = StreamProcessor(make_timer(config.timer), config.count, config.lines_before)
    relay = Relay(config, processor, sys.stdin, sys.stdout, queue_size=queue_size)
    previous = _install_stop_handlers(relay)
    try:
        return relay.run()
    finally:
        _restore_handlers(previous)


@app.command()
def main(
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Do not output stdin"),
    count: Optional[int] = typer.Option(
        None, "-c", "--count", help="Number of top differences to print at the end [default: 5]"
    ),
    lines_before: Optional[int] = typer.Option(
        None, "-B", "--lines-before", help="Lines of context before each difference [default: 5]"
    ),
    color_range: Optional[float] = typer.Option(
        None, "--color-range", help="Range for color scale of delay, in seconds [default: 0.2]"
    ),
    time_regex_iso: bool = typer.Option(
        False,
        "--time-regex-iso",
        help="Extract ISO 8601 timestamps (YYYY-mm-ddTHH:MM:SS.fffZ) instead of using real time",
    ),
    time_regex: Optional[str] = typer.Option(
        None,
        "--time-regex",
        help="Extract timestamps with this regex instead of using real time; "
        "it must have one (?P<time>...) named group",
    ),
    time_regex_format: Optional[str] = typer.Option(
        None,
        "--time-regex-format",
        help="strptime format of the timestamp, without timezone, e.g. '%Y-%m-%d %H:%M:%S.%f'",
    ),
    prepend_time: bool = typer.Option(False, "-p", "--prepend-time", help="Prepend time to output"),
    output_maximals: Optional[Path] = typer.Option(
        None, "-o", "--output-maximals", help="Redirect output of maximum differences to a file"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="YAML file with option defaults [default: ./txt-timer.yaml if present]"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """Pipe through standard input while highlighting and keeping track of delays between lines.

    When completed print summary of maximum delays.
    """
    try:
        env = EnvSettings()
    except ValidationError as exc:
        raise typer.BadParameter(first_error_message(exc), param_hint="environment")

    level = (log_level or env.LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise typer.BadParameter(f"unknown log level {level!r}", param_hint="'--log-level'")
    setup_logging(level)

    overrides = {
        "quiet": quiet or None,
        "count": count,
        "lines_before": lines_before,
        "color_range": color_range,
        "prepend_time": prepend_time or None,
        "output_maximals": output_maximals,
        "iso": time_regex_iso or None,
        "regex": time_regex,
        "format": time_regex_format,
    }
    try:
        config = build_run_config(overrides, config_path)
    except ValidationError as exc:
        raise typer.BadParameter(first_error_message(exc))
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="'--config'")

    try:
        entries = run_stream(config, queue_size=env.QUEUE_SIZE)
    except InputReadError as exc:
        typer.echo(f"Error: failed to read input: {exc}", err=True)
        raise typer.Exit(code=1)

    try:
        write_report(entries, sys.stdout, config.output_maximals)
    except BrokenPipeError:
        _silence_stdout()
