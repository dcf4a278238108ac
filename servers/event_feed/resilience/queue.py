"""Bounded-concurrency queue for per-item detail requests."""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")


class DetailFetchQueue:
    """Run one worker per item with at most ``concurrency`` in flight.

    Detail pages are served by small association websites, so the default
    allows a single outstanding request. A failing item is logged and
    skipped; it never stops the remaining items.
    """

    def __init__(self, concurrency: int = 1, name: str = "detail"):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.name = name
        self.failures: list[tuple[Any, str]] = []

    async def map(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[Optional[R]]],
    ) -> list[R]:
        """Apply worker to every item, preserving input order.

        Args:
            items: Work items (slugs, URLs)
            worker: Async callable returning a result or None to skip

        Returns:
            Non-None results in item order
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        items = list(items)
        self.failures = []

        async def run(item: T) -> Optional[R]:
            async with semaphore:
                try:
                    return await worker(item)
                except Exception as e:
                    self.failures.append((item, str(e)))
                    logger.warning(
                        "detail_item_failed",
                        queue=self.name,
                        item=str(item),
                        error=str(e),
                    )
                    return None

        if self.concurrency == 1:
            results = [await run(item) for item in items]
        else:
            results = await asyncio.gather(*(run(item) for item in items))

        return [result for result in results if result is not None]
