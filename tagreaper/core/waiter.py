"""
Polling helper for asynchronous AWS deletions.

Instance termination, NAT gateway deletion and Auto Scaling group deletion
finish after the API call returns. Deleters block on :func:`wait_until` so
that dependent deletions scheduled later find the resource gone.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Collection, Optional, Set

from tagreaper.core.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


def wait_until(
    poll: Callable[[], Collection[str]],
    timeout: float,
    interval: float,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
    description: str = "resources",
) -> Set[str]:
    """
    Poll until nothing is pending or ``timeout`` elapses.

    Parameters
    ----------
    poll : callable
        Returns the names still pending; an empty result ends the wait.
    timeout : float
        Seconds before giving up.
    interval : float
        Seconds between polls.
    cancel_event : threading.Event, optional
        Setting the event aborts the wait.
    clock : callable, default=time.monotonic
        Time source.
    description : str
        Used in log messages.

    Returns
    -------
    set of str
        Names still pending when the timeout elapsed (empty on success).

    Raises
    ------
    OperationCancelledError
        If ``cancel_event`` is set while waiting.
    """
    cancel_event = cancel_event or threading.Event()
    deadline = clock() + timeout
    while True:
        pending = set(poll())
        if not pending:
            return pending
        if clock() >= deadline:
            logger.warning(f"Timed out waiting for {description}: {sorted(pending)}")
            return pending
        logger.debug(f"Waiting for {len(pending)} {description}")
        if cancel_event.wait(interval):
            raise OperationCancelledError(
                f"Cancelled while waiting for {description}",
                details={"pending": sorted(pending)},
            )
