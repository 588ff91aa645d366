"""
Logging setup for the XML node streaming library.

Library modules log through ``logging.getLogger(__name__)``. This module owns
the handlers the library installs on the root logger (console on stderr, an
optional rotating log file) and keeps the performance records of extraction
runs, so node output written to stdout is never mixed with log lines.
"""

import json
import logging
import logging.handlers
import sys
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

PERFORMANCE_LOGGER = "xml_node_stream.performance"
USER_LOGGER = "xml_node_stream.user"


class LogLevel(Enum):
    """Verbosity presets offered on the command line."""
    SILENT = "silent"
    MINIMAL = "minimal"
    NORMAL = "normal"
    VERBOSE = "verbose"
    DEBUG = "debug"
    TRACE = "trace"


# Preset -> threshold of the root logger and of the library's handlers
_PYTHON_LEVELS = {
    LogLevel.SILENT: logging.CRITICAL,
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: logging.DEBUG,
}

# Presets that echo performance records as log lines
_PERFORMANCE_ECHO = (LogLevel.VERBOSE, LogLevel.DEBUG, LogLevel.TRACE)


@dataclass
class LogConfig:
    """Handler and record-keeping settings."""
    level: LogLevel = LogLevel.NORMAL
    console_output: bool = True
    file_output: bool = False
    log_file: Optional[Path] = None
    format_json: bool = False
    collect_performance: bool = True
    max_file_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


@dataclass
class PerformanceRecord:
    """Timing of one extraction step, with node and byte counts when known."""
    operation: str
    duration_seconds: float
    nodes: Optional[int] = None
    bytes_read: Optional[int] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def nodes_per_second(self) -> Optional[float]:
        if self.nodes is None or self.duration_seconds <= 0:
            return None
        return self.nodes / self.duration_seconds

    @property
    def mb_per_second(self) -> Optional[float]:
        if self.bytes_read is None or self.duration_seconds <= 0:
            return None
        return self.bytes_read / (1024 * 1024) / self.duration_seconds

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.update(data.pop("extra"))
        data["nodes_per_second"] = self.nodes_per_second
        data["mb_per_second"] = self.mb_per_second
        return data

    def summary(self) -> str:
        parts = [f"{self.operation}: {self.duration_seconds:.3f}s"]
        if self.nodes is not None:
            parts.append(f"{self.nodes:,} nodes")
        if self.bytes_read is not None:
            parts.append(f"{self.bytes_read:,} bytes")
        if self.mb_per_second is not None:
            parts.append(f"{self.mb_per_second:.2f} MB/s")
        return ", ".join(parts)


_RECORD_ATTRIBUTES = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including fields passed through ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        data.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES})
        return json.dumps(data, default=str, ensure_ascii=False)


class _LoggingState:
    """The handlers installed by the library and the collected records."""

    def __init__(self):
        self.config = LogConfig()
        self.handlers: List[logging.Handler] = []
        self.performance_records: List[PerformanceRecord] = []

    def apply(self, config: LogConfig) -> None:
        # Replace only our own handlers; handlers added by the application stay
        root_logger = logging.getLogger()
        for handler in self.handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self.handlers = []
        self.config = config

        threshold = _PYTHON_LEVELS[config.level]
        root_logger.setLevel(threshold)
        formatter = JsonFormatter() if config.format_json else self._text_formatter()

        if config.console_output:
            self._install(logging.StreamHandler(sys.stderr), formatter, threshold)

        if config.file_output and config.log_file:
            try:
                config.log_file.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    config.log_file,
                    maxBytes=config.max_file_bytes,
                    backupCount=config.backup_count,
                    encoding="utf-8",
                )
            except OSError as e:
                logging.getLogger(__name__).warning(f"Failed to set up file logging: {e}")
            else:
                self._install(file_handler, formatter, threshold)

    def _install(self, handler: logging.Handler, formatter: logging.Formatter, threshold: int) -> None:
        handler.setFormatter(formatter)
        handler.setLevel(threshold)
        logging.getLogger().addHandler(handler)
        self.handlers.append(handler)

    def _text_formatter(self) -> logging.Formatter:
        if self.config.level == LogLevel.MINIMAL:
            fmt = "%(message)s"
        elif self.config.level in (LogLevel.DEBUG, LogLevel.TRACE):
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(asctime)s - %(levelname)s - %(message)s"
        return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")


_state = _LoggingState()


def configure_logging(level: Union[str, LogLevel, None] = None, **options) -> LogConfig:
    """
    Update the library's logging settings and reinstall its handlers.

    Settings not passed keep their current value.

    Args:
        level: A ``LogLevel`` or its name
        **options: Other ``LogConfig`` fields

    Returns:
        The configuration now in effect

    Raises:
        ValueError: If ``level`` is not a known preset
        TypeError: If an option is not a ``LogConfig`` field
    """
    if isinstance(level, str):
        level = LogLevel(level.lower())
    if level is not None:
        options["level"] = level
    if options.get("log_file") is not None:
        options["log_file"] = Path(options["log_file"])

    config = replace(_state.config, **options)
    _state.apply(config)
    return config


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a library module; defaults to the package logger."""
    return logging.getLogger(name or "xml_node_stream")


def user_success(message: str, **fields) -> None:
    """Report a completed user-facing action unless logging is silenced."""
    if _state.config.level != LogLevel.SILENT:
        logging.getLogger(USER_LOGGER).info(f"✅ {message}", extra=fields)


def performance_log(
    operation: str,
    duration: float,
    nodes: Optional[int] = None,
    bytes_read: Optional[int] = None,
    **extra
) -> Optional[PerformanceRecord]:
    """
    Record the timing of an extraction step.

    Records are kept only while ``collect_performance`` is on, and echoed to
    the log at the verbose and debug presets.
    """
    if not _state.config.collect_performance:
        return None

    record = PerformanceRecord(operation, duration, nodes=nodes, bytes_read=bytes_read, extra=extra)
    _state.performance_records.append(record)
    if _state.config.level in _PERFORMANCE_ECHO:
        logging.getLogger(PERFORMANCE_LOGGER).info(f"⏱️  {record.summary()}", extra=record.to_dict())
    return record


def performance_records() -> List[PerformanceRecord]:
    """Records collected so far, oldest first."""
    return list(_state.performance_records)


def clear_performance_records() -> None:
    _state.performance_records.clear()
