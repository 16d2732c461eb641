from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional
import logging
import os
import uuid

import yaml

from .types import ALL_SEVERITIES, Severity


class ConfigError(ValueError):
    """Raised when handler configuration is missing or invalid."""


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _parse_bool(raw: Any, *, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {raw!r}")


def _parse_mask(raw: Any, *, key: str) -> Severity:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return Severity(raw) & ALL_SEVERITIES
    if isinstance(raw, (list, tuple)):
        raw = ",".join(str(item) for item in raw)
    try:
        return Severity.parse(str(raw))
    except ValueError as error:
        raise ConfigError(f"Invalid {key}: {error}") from error


def _parse_level(raw: Any, *, key: str) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    level = logging.getLevelName(str(raw).strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"Invalid log level for {key}: {raw!r}")
    return level


@dataclass(frozen=True)
class HandlerConfig:
    """
    Policy and logging configuration for an ExceptionHandler.

    Parameters
    ----------
    display_errors
        On an uncaught failure, render it to the operator and continue instead
        of handing it back to the interpreter's default hook.
    notify_sinks
        Fan failures out to the registered sinks.
    notify_process_log
        Write a copy of every failure to the baseline process log.
    reporting_mask
        Severities that are converted into SignalError; anything else is dropped.
    trap_signals
        Trap SIGTERM / SIGXCPU as fatal conditions seen by the shutdown path.
    log_dir
        When set, the process log also writes ``faultline_<run_id>.log`` here.
    run_id
        Identifier used in log file names. If "auto", a short UUID4 is generated.
    console_level
        Logging level for the console handler of the process log.
    file_level
        Logging level for the file handler of the process log.
    write_jsonl
        If True (and log_dir is set), also write JSONL events to
        <log_dir>/events_<run_id>.jsonl.
    env_prefix
        Prefix for environment-variable overrides, e.g. "FAULTLINE_".

    Usage example
    -------------
        cfg = HandlerConfig(notify_sinks=True, log_dir=Path("logs"))
    """

    display_errors: bool = False
    notify_sinks: bool = False
    notify_process_log: bool = True
    reporting_mask: Severity = ALL_SEVERITIES
    trap_signals: bool = True

    log_dir: Optional[Path] = None
    run_id: str = "auto"

    console_level: int = 30  # logging.WARNING
    file_level: int = 10  # logging.DEBUG

    write_jsonl: bool = False

    env_prefix: str = field(default="", repr=False)

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:10]

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        default: Optional["HandlerConfig"] = None,
    ) -> "HandlerConfig":
        """
        Build a config from a plain mapping (e.g. a parsed YAML section).

        Unknown keys raise ConfigError so typos do not silently disable policy.
        """
        base = default if default is not None else cls()
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if key in ("display_errors", "notify_sinks", "notify_process_log", "trap_signals", "write_jsonl"):
                values[key] = _parse_bool(raw, key=key)
            elif key == "reporting_mask":
                values[key] = _parse_mask(raw, key=key)
            elif key in ("console_level", "file_level"):
                values[key] = _parse_level(raw, key=key)
            elif key == "log_dir":
                values[key] = Path(str(raw)) if raw not in (None, "") else None
            elif key in ("run_id", "env_prefix"):
                values[key] = str(raw)
            else:
                raise ConfigError(f"Unknown configuration key: {key}")
        return replace(base, **values)

    @classmethod
    def from_env(cls, *, default: Optional["HandlerConfig"] = None) -> "HandlerConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>DISPLAY_ERRORS: "1"/"0"
        - <PFX>NOTIFY_SINKS: "1"/"0"
        - <PFX>NOTIFY_PROCESS_LOG: "1"/"0"
        - <PFX>REPORTING_MASK: severity names, e.g. "warning,deprecated" or "all"
        - <PFX>LOG_DIR: path
        - <PFX>WRITE_JSONL: "1"/"0"

        Notes
        -----
        Invalid values fall back to the value on `default`.

        Usage example
        -------------
            cfg = HandlerConfig.from_env(default=HandlerConfig(env_prefix="FAULTLINE_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        def _flag(name: str, current: bool) -> bool:
            raw = os.getenv(f"{pfx}{name}")
            if raw is None:
                return current
            try:
                return _parse_bool(raw, key=name)
            except ConfigError:
                return current

        reporting_mask = base.reporting_mask
        mask_raw = os.getenv(f"{pfx}REPORTING_MASK", "")
        if mask_raw.strip():
            try:
                reporting_mask = _parse_mask(mask_raw, key="REPORTING_MASK")
            except ConfigError:
                reporting_mask = base.reporting_mask

        log_dir = base.log_dir
        log_dir_raw = os.getenv(f"{pfx}LOG_DIR", "")
        if log_dir_raw.strip():
            log_dir = Path(log_dir_raw.strip())

        return replace(
            base,
            display_errors=_flag("DISPLAY_ERRORS", base.display_errors),
            notify_sinks=_flag("NOTIFY_SINKS", base.notify_sinks),
            notify_process_log=_flag("NOTIFY_PROCESS_LOG", base.notify_process_log),
            reporting_mask=reporting_mask,
            log_dir=log_dir,
            write_jsonl=_flag("WRITE_JSONL", base.write_jsonl),
        )


def load_config(root: Path, *, default: Optional[HandlerConfig] = None) -> HandlerConfig:
    """
    Load handler config from the ``faultline`` section of a YAML file in `root`.

    Search order:
    1) ``faultline.yaml``
    2) ``config.yaml``

    A missing file or a file without a ``faultline`` section yields `default`
    (or the built-in defaults).
    """

    base = default if default is not None else HandlerConfig()
    for filename in ("faultline.yaml", "config.yaml"):
        config_path = root / filename
        if not config_path.exists():
            continue
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as error:
            raise ConfigError(f"Could not parse {config_path}: {error}") from error
        if data is None:
            return base
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping at top level.")
        section = data.get("faultline")
        if section is None:
            return base
        if not isinstance(section, dict):
            raise ConfigError(f"{config_path}: 'faultline' must be a mapping.")
        return HandlerConfig.from_mapping(section, default=base)
    return base
