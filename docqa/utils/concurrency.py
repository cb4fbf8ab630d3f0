"""Bounded, order-preserving concurrency for rate-limited provider calls.

:func:`ordered_bounded_map` keeps at most ``limit`` calls in flight and
yields their results strictly in input order, so callers that number
results by position (chunk numbering) stay deterministic even though the
calls overlap.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar

import structlog

from docqa.utils.logging import get_logger

_T = TypeVar("_T")
_R = TypeVar("_R")

_logger: structlog.BoundLogger = get_logger(__name__)


async def ordered_bounded_map(
    func: Callable[[_T], Awaitable[_R]],
    items: Iterable[_T],
    limit: int,
) -> AsyncIterator[_R]:
    """Apply ``func`` to every item with bounded concurrency, in order.

    Parameters
    ----------
    func:
        Coroutine function called once per item.
    items:
        Inputs, consumed lazily as slots free up.
    limit:
        Maximum number of ``func`` calls running at once.  ``1`` degrades
        to plain sequential execution.

    Yields
    ------
    _R
        Results in the same order as ``items``.

    Raises
    ------
    ValueError
        If ``limit`` is less than 1.

    The first failing call propagates its exception; calls still in flight
    are cancelled.  Wrap the generator in :func:`contextlib.aclosing` so the
    cancellation also runs when the consumer stops early.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    pending: deque[asyncio.Future[_R]] = deque()
    try:
        for item in items:
            pending.append(asyncio.ensure_future(func(item)))
            if len(pending) >= limit:
                yield await pending.popleft()
        while pending:
            yield await pending.popleft()
    finally:
        if pending:
            _logger.debug("ordered_map_cancelled", in_flight=len(pending))
            for future in pending:
                future.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
