from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from faultline import hooks
from faultline.config import HandlerConfig
from faultline.handler import ExceptionHandler


class RecordingSink:
    """Sink that appends ``(name, level, payload)`` to a shared list."""

    def __init__(self, name: str, calls: list[tuple[str, str, Any]]) -> None:
        self.name = name
        self.calls = calls

    def error(self, payload: Any) -> None:
        self.calls.append((self.name, "error", payload))

    def emergency(self, payload: Any) -> None:
        self.calls.append((self.name, "emergency", payload))


class RaisingSink:
    """Sink whose every call fails."""

    def __init__(self, message: str = "sink is down") -> None:
        self.message = message
        self.attempts = 0

    def error(self, payload: Any) -> None:
        self.attempts += 1
        raise RuntimeError(self.message)

    def emergency(self, payload: Any) -> None:
        self.attempts += 1
        raise RuntimeError(self.message)


@pytest.fixture(autouse=True)
def _no_leaked_hooks() -> Iterator[None]:
    yield
    hooks.uninstall()


@pytest.fixture
def make_handler(tmp_path: Path) -> Callable[..., ExceptionHandler]:
    def _make(**overrides: Any) -> ExceptionHandler:
        output = overrides.pop("output", None)
        values: dict[str, Any] = {
            "log_dir": tmp_path / "logs",
            "run_id": "testrun",
            "console_level": logging.CRITICAL + 10,  # keep test output quiet
            "trap_signals": False,
        }
        values.update(overrides)
        return ExceptionHandler(cfg=HandlerConfig(**values), output=output)

    return _make


@pytest.fixture
def process_log(tmp_path: Path) -> Callable[[], str]:
    def _read() -> str:
        path = tmp_path / "logs" / "faultline_testrun.log"
        return path.read_text(encoding="utf-8") if path.exists() else ""

    return _read
