import asyncio
import contextlib
from collections.abc import Iterable

from eth_typing import ChecksumAddress

from clquote.checksum_cache import get_checksum_address
from clquote.config import settings
from clquote.exceptions import ClquoteError, ClquoteValueError
from clquote.logging import logger
from clquote.types.aliases import Seconds
from clquote.uniswap.v3_pipeline import LiquidityPipeline
from clquote.uniswap.v3_types import PoolDescriptor


class BackgroundRefresher:
    """
    Periodically re-runs the liquidity pipeline for a set of pools, keeping their cache entries
    fresh.

    A failed refresh is logged and leaves the previous cache entry in place. Only one refresh pass
    runs at a time. `stop` is observed between pools and during the wait between passes.
    """

    def __init__(
        self,
        pipeline: LiquidityPipeline,
        pools: Iterable[PoolDescriptor] = (),
        *,
        interval: Seconds | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.interval: Seconds = interval if interval is not None else settings.refresh_interval
        if self.interval <= 0:
            raise ClquoteValueError(message="Refresh interval must be positive.")

        self._pools: dict[ChecksumAddress, PoolDescriptor] = {pool.address: pool for pool in pools}
        self._pass_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def pools(self) -> tuple[PoolDescriptor, ...]:
        return tuple(self._pools.values())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_pool(self, pool: PoolDescriptor) -> None:
        self._pools[pool.address] = pool

    def remove_pool(self, pool_address: str) -> None:
        self._pools.pop(get_checksum_address(pool_address), None)

    def start(self) -> None:
        """
        Start refreshing in a background task on the running event loop.
        """

        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="clquote-background-refresher")

    async def stop(self) -> None:
        """
        Signal the refresher to stop and wait for the current pool refresh to finish. Once stopped,
        `refresh_once` may be called directly again.
        """

        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        self._stop_event.clear()

    async def refresh_once(self) -> dict[ChecksumAddress, bool]:
        """
        Refresh every configured pool once and report which refreshes succeeded.
        """

        results: dict[ChecksumAddress, bool] = {}
        async with self._pass_lock:
            for pool in self.pools:
                if self._stop_event.is_set():
                    logger.debug("Refresh pass interrupted by stop request")
                    break
                try:
                    await self.pipeline.run(pool)
                except ClquoteError:
                    logger.exception(f"Background refresh of pool {pool.address} failed")
                    results[pool.address] = False
                else:
                    results[pool.address] = True

        logger.info(
            f"Refresh pass complete: {sum(results.values())}/{len(self._pools)} pools refreshed"
        )
        return results

    async def _run(self) -> None:
        logger.info(f"Background refresher started, interval {self.interval}s")
        while not self._stop_event.is_set():
            await self.refresh_once()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
        logger.info("Background refresher stopped")
