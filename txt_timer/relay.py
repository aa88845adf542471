from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, TextIO

from .config import RunConfig
from .core.processor import Entry, StreamProcessor
from .render import make_console, print_stamp


logger = logging.getLogger(__name__)

_POLL_SEC = 0.1


class InputReadError(RuntimeError):
    """Reading the input stream failed before end of input."""


def pass_bytes_through(stream: TextIO) -> None:
    """Let undecodable bytes survive a text stream unchanged.

    Bytes that are not valid UTF-8 become lone surrogates on read and are
    written back as the same bytes. Streams without `reconfigure` are left
    as they are.
    """
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="surrogateescape")


@dataclass
class ReceivedLine:
    text: str
    received_ns: int


class Relay:
    """Read lines on a background thread and process them on the caller's thread.

    The reader hands lines over through a bounded queue and blocks when it is
    full, so no line is dropped. `stop()` keeps the reader from starting
    another read. A line whose read was already under way is still relayed,
    and `run()` returns once the reader has signalled the end of its input.
    """

    def __init__(
        self,
        config: RunConfig,
        processor: StreamProcessor,
        source: TextIO,
        sink: TextIO,
        queue_size: int = 1024,
    ) -> None:
        self.config = config
        self.processor = processor
        self.source = source
        self.sink = sink
        self._queue: "queue.Queue[Optional[ReceivedLine]]" = queue.Queue(maxsize=queue_size)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._console = make_console(sink)
        self._sink_open = True
        self._read_error: Optional[BaseException] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._read, name="LineReader", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def stopping(self) -> bool:
        return self._stop.is_set()

    def _read(self) -> None:
        # Stop is only checked before a read; a line once read is always handed off
        try:
            while not self._stop.is_set():
                text = self.source.readline()
                if not text:
                    break
                self._queue.put(ReceivedLine(text=text, received_ns=time.monotonic_ns()))
        except (OSError, ValueError) as exc:
            logger.exception("Reading input failed")
            self._read_error = exc
        finally:
            self._queue.put(None)

    def run(self) -> List[Entry]:
        """Process lines until the reader signals end of input.

        Raises InputReadError after draining if reading failed.
        """
        self.start()
        while True:
            try:
                item = self._queue.get(timeout=_POLL_SEC)
            except queue.Empty:
                continue
            if item is None:
                break
            self._handle(item)
        if self._stop.is_set():
            logger.info("Stop requested, input drained")
        if self._read_error is not None:
            raise InputReadError(str(self._read_error)) from self._read_error
        return self.processor.finish()

    def _handle(self, item: ReceivedLine) -> None:
        stamp = self.processor.process(item.text, item.received_ns)
        if not self._sink_open:
            return
        try:
            if stamp is not None and self.config.prepend_time:
                print_stamp(self._console, stamp, self.config.color_range)
            if not self.config.quiet:
                self.sink.write(item.text)
            self.sink.flush()
        except BrokenPipeError:
            logger.warning("Output closed, no longer relaying lines")
            self._sink_open = False
