#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/debounce.py
"""Trailing-edge debounce for change notifications.

A :class:`Debouncer` owns at most one pending deadline. Every ``trigger()``
replaces the previous deadline, so a burst of edits results in one callback
once the session has been quiet for ``delay`` seconds.

Without an event loop the owner drives it by calling :meth:`Debouncer.poll`
(for example from its own idle handler); with an asyncio loop the callback is
scheduled through ``loop.call_later``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``callback`` once after ``delay`` seconds without new triggers.

    Parameters
    ----------
    delay : float
        Quiet period in seconds
    callback : callable
        Function called without arguments when the period elapses
    clock : callable, default time.monotonic
        Source of the current time, used by :meth:`poll`
    loop : asyncio.AbstractEventLoop, optional
        When given, the callback is scheduled on this loop

    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self.delay = delay
        self.callback = callback
        self.clock = clock
        self.loop = loop
        self._deadline: Optional[float] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        """Whether a notification is waiting."""
        return self._deadline is not None

    def trigger(self) -> None:
        """Start the quiet period again, superseding any pending deadline."""
        self._cancel_handle()
        self._deadline = self.clock() + self.delay
        if self.loop is not None:
            self._handle = self.loop.call_later(self.delay, self._fire)

    def poll(self) -> bool:
        """Fire the callback if the quiet period has elapsed.

        Returns
        -------
        bool
            Whether the callback ran

        """
        if self._deadline is None or self.clock() < self._deadline:
            return False
        self._fire()
        return True

    def flush(self) -> bool:
        """Fire a pending callback right away; returns whether one was pending."""
        if self._deadline is None:
            return False
        self._fire()
        return True

    def cancel(self) -> None:
        """Drop the pending notification without firing it."""
        self._cancel_handle()
        self._deadline = None

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._cancel_handle()
        self._deadline = None
        logger.debug("Debounce period elapsed, notifying")
        self.callback()


__all__ = ["Debouncer"]
