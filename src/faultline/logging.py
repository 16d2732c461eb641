from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import HandlerConfig
from .types import safe_str

PROCESS_LOGGER_NAME = "faultline"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class JsonlEventLogger:
    """
    Writes structured events as JSON lines.

    Each line is a dict that includes at least:
    - time_utc
    - run_id
    - event
    - level
    - message (optional)
    - context (optional)
    - exc_type, exc_msg (optional)

    Usage example
    -------------
        ev = JsonlEventLogger(path=Path("logs/events_abc.jsonl"), run_id="abc")
        ev.write(event="sink_failed", level="ERROR", exc=exc, context={"sink": "LoggerSink"})
    """
    path: Path
    run_id: str

    def write(
        self,
        *,
        event: str,
        level: str,
        context: Optional[Mapping[str, Any]] = None,
        exc: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "time_utc": _utc_now_iso(),
            "run_id": self.run_id,
            "event": event,
            "level": level,
        }
        if message:
            payload["message"] = message
        if context:
            payload["context"] = dict(context)
        if exc is not None:
            payload["exc_type"] = type(exc).__name__
            payload["exc_msg"] = safe_str(exc)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")


class _RunContextFilter(logging.Filter):
    def __init__(self, *, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        # Ensure `run_id` and `event` exist for the file formatter
        if not hasattr(record, "run_id"):
            setattr(record, "run_id", self._run_id)
        if not hasattr(record, "event"):
            setattr(record, "event", "-")
        return True


def process_logger_name(run_id: str) -> str:
    """Name of the process logger for one run id."""
    return f"{PROCESS_LOGGER_NAME}.{run_id}"


def configure_logging(*, cfg: HandlerConfig) -> tuple[logging.Logger, Optional[JsonlEventLogger]]:
    """
    Configure the baseline process log: console, optional file, optional JSONL.

    Returns
    -------
    logger
        The "faultline.<run_id>" logger owned by this configuration. Handlers
        are replaced when the same run id is configured again; other run ids
        keep their own handlers and files.
    event_logger
        JsonlEventLogger if cfg.write_jsonl and cfg.log_dir are set, else None.

    Usage example
    -------------
        logger, event_logger = configure_logging(cfg=cfg)
        logger.error("Hello")
    """
    run_id = cfg.resolved_run_id()

    logger = logging.getLogger(process_logger_name(run_id))
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    # also covers records propagated from child loggers
    run_filter = _RunContextFilter(run_id=run_id)

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=False,
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(cfg.console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(run_filter)
    logger.addHandler(console_handler)

    event_logger = None
    if cfg.log_dir is not None:
        log_dir = cfg.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)

        # File handler (always plain)
        file_handler = logging.FileHandler(log_dir / f"faultline_{run_id}.log", encoding="utf-8")
        file_handler.setLevel(cfg.file_level)
        file_handler.addFilter(run_filter)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)sZ | run=%(run_id)s | event=%(event)s | %(levelname)s | %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

        if cfg.write_jsonl:
            event_logger = JsonlEventLogger(path=log_dir / f"events_{run_id}.jsonl", run_id=run_id)

    logger.debug("Process log configured (run_id=%s, log_dir=%s)", run_id, str(cfg.log_dir))
    return logger, event_logger
