"""
Conformance Logging

Structured console + file logging for strided copy runs. Logs are written
next to the JSON report with a matching filename.

Usage:
    from stridecheck.logging import ConformanceLogger, get_logger

    with ConformanceLogger(output_dir=Path("runs/"), filename_prefix="gpu0_global_to_local") as log:
        log.section("async_strided_copy_global_to_local")
        log.info("Testing float4")
        log.geometry(geometry)

    # Any module can pick up the active logger
    log = get_logger()
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import ExecutionGeometry


_run_logger: Optional['ConformanceLogger'] = None


def get_logger() -> 'ConformanceLogger':
    """
    Get the active conformance logger.

    Returns:
        The active ConformanceLogger, or a console-only logger if none was created.
    """
    global _run_logger
    if _run_logger is None:
        _run_logger = ConformanceLogger()
    return _run_logger


def set_logger(logger: 'ConformanceLogger'):
    """Set the module-level conformance logger."""
    global _run_logger
    _run_logger = logger


@dataclass
class LogConfig:
    """Configuration for conformance logging."""

    output_dir: Optional[Path] = None
    filename_prefix: Optional[str] = None

    # Messages below this level are kept out of the console
    console_level: int = logging.INFO

    file_timestamps: bool = True
    separator_width: int = 80

    # Console output can be silenced entirely (tests, --quiet)
    quiet: bool = False


class ConformanceLogger:
    """
    Logger for conformance runs.

    Every message is kept in memory (see get_content()), printed to the
    console unless below the console level, and appended to
    "{prefix}.log" when an output directory is given.
    """

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        filename_prefix: Optional[str] = None,
        config: Optional[LogConfig] = None,
    ):
        self.config = config or LogConfig()
        self.output_dir = output_dir or self.config.output_dir
        self.filename_prefix = filename_prefix or self.config.filename_prefix

        self._log_file: Optional[TextIO] = None
        self._log_path: Optional[Path] = None
        self._lines: list[str] = []
        self.error_count = 0

        if self.output_dir and self.filename_prefix:
            self.output_dir = Path(self.output_dir)
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._log_path = self.output_dir / f"{self.filename_prefix}.log"
            self._log_file = open(self._log_path, 'w')

        set_logger(self)

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    def _write(self, message: str, level: int = logging.INFO):
        self._lines.append(message)

        if not self.config.quiet and level >= self.config.console_level:
            print(message)

        if self._log_file:
            timestamp = ""
            if self.config.file_timestamps:
                timestamp = f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}] "
            self._log_file.write(f"{timestamp}{message}\n")
            self._log_file.flush()

    def info(self, message: str):
        self._write(message)

    def debug(self, message: str):
        """Log a debug message (file and buffer only by default)."""
        self._write(message, level=logging.DEBUG)

    def warning(self, message: str):
        self._write(f"⚠ WARNING: {message}", level=logging.WARNING)

    def error(self, message: str):
        self.error_count += 1
        self._write(f"✗ ERROR: {message}", level=logging.ERROR)

    def success(self, message: str):
        self._write(f"✓ {message}")

    def section(self, title: str, level: int = 1):
        """
        Print a section header.

        Args:
            title: Section title
            level: Header level (1=major, 2=minor)
        """
        width = self.config.separator_width
        self._write("")
        if level == 1:
            self._write("=" * width)
            self._write(title)
            self._write("=" * width)
        else:
            self._write(title)
            self._write("-" * width)

    def table_header(self, *columns: str, widths: Optional[list[int]] = None):
        if widths is None:
            widths = [max(12, len(col) + 2) for col in columns]
        header = "  ".join(f"{col:<{w}}" for col, w in zip(columns, widths))
        self._write(header)
        self._write("-" * len(header))

    def table_row(self, *values, widths: Optional[list[int]] = None):
        if widths is None:
            widths = [max(12, len(str(v)) + 2) for v in values]
        self._write("  ".join(f"{str(v):<{w}}" for v, w in zip(values, widths)))

    def geometry(self, geometry: 'ExecutionGeometry'):
        """Log the planned sizes of a transfer."""
        self._write(geometry.describe())

    def summary(self, title: str, **metrics):
        """
        Log a summary with key-value metrics.

        Args:
            title: Summary title
            **metrics: Key-value pairs; underscores in keys become spaces
        """
        self._write("")
        self._write(f"{title}:")
        for key, value in metrics.items():
            self._write(f"  {key.replace('_', ' ').title()}: {value}")

    def get_content(self) -> str:
        return "\n".join(self._lines)

    def close(self):
        if self._log_file:
            self._log_file.close()
            self._log_file = None

    def __enter__(self) -> 'ConformanceLogger':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_run_logger(
    output_dir: Optional[Path] = None,
    device_name: str = "device",
    direction: str = "all",
    quiet: bool = False,
) -> ConformanceLogger:
    """
    Create a run logger with the standard naming convention.

    The log file will be named: {device}_{direction}.log

    Args:
        output_dir: Directory for the log file; console only when None
        device_name: Device name (sanitised for the filename)
        direction: Copy direction value, or "all"
        quiet: Suppress console output

    Returns:
        Configured ConformanceLogger instance
    """
    import re

    device_clean = re.sub(r'[^a-zA-Z0-9]+', '_', device_name).strip('_').lower() or "device"
    return ConformanceLogger(
        output_dir=output_dir,
        filename_prefix=f"{device_clean}_{direction}",
        config=LogConfig(quiet=quiet),
    )
