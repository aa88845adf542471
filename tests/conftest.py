from __future__ import annotations

import logging
from typing import Iterator

import pytest


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:  # noqa: ANN001
    for name in ("TXT_TIMER_LOG_LEVEL", "TXT_TIMER_QUEUE_SIZE"):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray ./txt-timer.yaml or ./.env out of the runs
    monkeypatch.chdir(tmp_path)
