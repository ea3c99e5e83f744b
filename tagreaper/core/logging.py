"""
Logging Configuration Module
============================

Two logging channels are configured here:

- the application log, rendered on the terminal by Rich (and optionally
  mirrored to a plain text file);
- the request log (``tagreaper.requests``), one JSON object per line, with
  the resource context of every deletion request that succeeded or failed.

The request log is what an operator keeps after a run. ``tagreaper report``
reads it back with :func:`read_log_entries`.

Functions
---------
setup_logging
    Configure the application log.
setup_request_logger
    Point the request log at a timestamped JSON-lines file or stderr.
read_log_entries
    Parse a request log back into :class:`LogEntry` records.

Example
-------
>>> from tagreaper.core.logging import setup_logging, setup_request_logger
>>>
>>> setup_logging(level="INFO")
>>> request_logger, path = setup_request_logger(log_dir="logs")
>>> request_logger.error(
...     "Failed to delete resource",
...     extra={"resource_type": "AWS::EC2::VPC", "resource_name": "vpc-1"},
... )
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Dict, Iterator, Optional, Tuple, Union

from rich.console import Console
from rich.logging import RichHandler

CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Libraries that log every request at INFO/DEBUG
QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")

REQUEST_LOGGER_NAME = "tagreaper.requests"
REQUEST_LOG_PREFIX = "tagreaper"

# Structured fields carried by every request log record
LOG_ENTRY_FIELDS = (
    "resource_type",
    "resource_name",
    "aws_err_code",
    "aws_err_msg",
    "err_msg",
    "parent_resource_type",
    "parent_resource_name",
)


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[str] = None,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure the application log on the root logger.

    Parameters
    ----------
    level : str or int, default="INFO"
        Level name or number; unknown names fall back to INFO.
    log_file : str, optional
        Plain text file receiving the same records as the terminal.
    rich_tracebacks : bool, default=True
        Render exceptions with Rich.
    console : Console, optional
        Console for the Rich handler. Defaults to stderr, so that stdout only
        carries deletion lines and JSON records.

    Notes
    -----
    Existing root handlers are removed, so calling this twice is safe.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handlers: list = [
        RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=rich_tracebacks,
        )
    ]
    handlers[0].setFormatter(logging.Formatter(CONSOLE_FORMAT))
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(f"Application log at {logging.getLevelName(level)} (file: {log_file})")


# =============================================================================
# Request Log
# =============================================================================


class JSONLineFormatter(logging.Formatter):
    """
    Render a log record as a single JSON object.

    Only the resource context fields in ``LOG_ENTRY_FIELDS`` are copied from
    the record; empty fields are omitted.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname.lower(),
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created).isoformat(),
        }
        for field_name in LOG_ENTRY_FIELDS:
            value = getattr(record, field_name, None)
            if value:
                payload[field_name] = value
        return json.dumps(payload)


def setup_request_logger(
    log_dir: Optional[str] = None,
    level: Union[str, int] = "INFO",
) -> Tuple[logging.Logger, Optional[Path]]:
    """
    Configure the structured request logger.

    Parameters
    ----------
    log_dir : str, optional
        Directory receiving ``tagreaper-YYYYmmdd_HHMMSS.log``. When omitted the
        records go to stderr.
    level : str or int, default="INFO"
        Minimum level written.

    Returns
    -------
    tuple of (logging.Logger, Path or None)
        The request logger and the log file path, if any.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    request_logger = logging.getLogger(REQUEST_LOGGER_NAME)
    request_logger.setLevel(level)
    request_logger.propagate = False
    for handler in list(request_logger.handlers):
        request_logger.removeHandler(handler)
        handler.close()

    log_path: Optional[Path] = None
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = directory / f"{REQUEST_LOG_PREFIX}-{timestamp}.log"
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(JSONLineFormatter())
    request_logger.addHandler(handler)
    return request_logger, log_path


def get_request_logger() -> logging.Logger:
    """Return the structured request logger."""
    return logging.getLogger(REQUEST_LOGGER_NAME)


@dataclass
class LogEntry:
    """One parsed request log line."""

    level: str = ""
    msg: str = ""
    time: str = ""
    resource_type: str = ""
    resource_name: str = ""
    aws_err_code: str = ""
    aws_err_msg: str = ""
    err_msg: str = ""
    parent_resource_type: str = ""
    parent_resource_name: str = ""

    @property
    def is_failure(self) -> bool:
        return bool(self.aws_err_code or self.err_msg or self.level == "error")

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v}


def read_log_entries(stream: IO[str]) -> Iterator[LogEntry]:
    """
    Parse request log lines.

    Blank lines are skipped and unknown keys are ignored.

    Raises
    ------
    ValueError
        If a line is not a JSON object.
    """
    known = set(LogEntry.__dataclass_fields__)
    for line_number, line in enumerate(stream, 1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"Line {line_number} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Line {line_number} is not a JSON object")
        yield LogEntry(**{k: str(v) for k, v in data.items() if k in known})
