"""
Run Configuration
=================

:class:`DeleteConfig` carries everything a deleter needs to know about the
current run. One instance is built per run and handed to every
``delete_resources`` call; it is frozen and never changes during the run.

Example
-------
>>> from tagreaper.core.config import DeleteConfig
>>>
>>> config = DeleteConfig(dry_run=True, backoff_time=0.5)
>>> config.emit("(dry-run) Deleted EC2 VPC vpc-1")
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from rich.console import Console

from tagreaper.core.logging import get_request_logger
from tagreaper.core.retry import RetryPolicy

DRY_RUN_PREFIX = "(dry-run)"


@dataclass(frozen=True)
class DeleteConfig:
    """
    Run-scoped deletion settings.

    Attributes
    ----------
    dry_run : bool
        Report intended deletions without calling mutating APIs.
    ignore_errors : bool
        Record per-resource failures and continue instead of aborting.
    backoff_time : float
        Seconds slept after every mutating call.
    retry_policy : RetryPolicy
        Retry behaviour for every AWS call made by deleters.
    wait_timeout : float
        Seconds to wait for asynchronous deletions to finish.
    poll_interval : float
        Seconds between polls while waiting.
    cancel_event : threading.Event
        Set from another thread to stop waits and retries.
    console : Console
        Receives one human-readable line per deleted or failed resource.
    request_logger : logging.Logger
        Receives structured records with resource context.
    sleep : callable
        Used for ``backoff_time``.
    """

    dry_run: bool = False
    ignore_errors: bool = False
    backoff_time: float = 0.0
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    wait_timeout: float = 300.0
    poll_interval: float = 15.0
    cancel_event: threading.Event = field(default_factory=threading.Event)
    console: Console = field(default_factory=lambda: Console(soft_wrap=True))
    request_logger: logging.Logger = field(default_factory=get_request_logger)
    sleep: Callable[[float], Any] = time.sleep

    def emit(self, line: str) -> None:
        """Print one output line verbatim."""
        self.console.print(line, markup=False, highlight=False, soft_wrap=True)

    def pause(self) -> None:
        """Sleep for ``backoff_time`` between mutating calls."""
        if self.backoff_time > 0:
            self.sleep(self.backoff_time)

    def call(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Invoke an AWS operation under the run's retry policy."""
        return self.retry_policy.call(
            operation,
            *args,
            cancel_event=self.cancel_event,
            **kwargs,
        )
