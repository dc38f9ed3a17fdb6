import logging

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from clquote.chain_reader import ChainReader
from clquote.config import settings
from clquote.exceptions import ClquoteValueError, PipelineRetriesExhausted, ProviderError
from clquote.logging import logger
from clquote.uniswap.v3_bitmap_scanner import BitmapScanner
from clquote.uniswap.v3_tick_cache import TickCache
from clquote.uniswap.v3_tick_fetcher import TickDataFetcher
from clquote.uniswap.v3_types import CacheEntry, PoolDescriptor


class LiquidityPipeline:
    """
    Rebuilds the complete tick set of a pool: a bitmap scan followed by a tick fetch, both pinned
    to the same block, with the result written to the cache.

    A run is retried as a whole when a read fails. Individual batches are never retried, so a
    result never mixes data from different attempts.
    """

    def __init__(
        self,
        reader: ChainReader,
        cache: TickCache,
        *,
        scanner: BitmapScanner | None = None,
        fetcher: TickDataFetcher | None = None,
        retries: int | None = None,
        wait: wait_base | None = None,
    ) -> None:
        self.reader = reader
        self.cache = cache
        self.scanner = scanner if scanner is not None else BitmapScanner(reader)
        self.fetcher = fetcher if fetcher is not None else TickDataFetcher(reader)
        self.retries = retries if retries is not None else settings.pipeline_retries
        if self.retries < 1:
            raise ClquoteValueError(message="At least one pipeline attempt is required.")
        self._wait = wait if wait is not None else wait_exponential_jitter(initial=0.5, max=10)

    async def run(self, pool: PoolDescriptor) -> CacheEntry:
        """
        Fetch the pool's tick set and replace its cache entry. On failure the existing entry is left
        untouched and `PipelineRetriesExhausted` is raised.
        """

        retrier = AsyncRetrying(
            stop=stop_after_attempt(self.retries),
            wait=self._wait,
            retry=retry_if_exception_type(ProviderError),
            before_sleep=before_sleep_log(logger, logging.WARNING),  # type: ignore[arg-type]
        )

        try:
            async for attempt in retrier:
                with attempt:
                    block = await self.reader.block_number()
                    tick_indices = await self.scanner.scan(
                        pool.address, pool.tick_spacing, block_identifier=block
                    )
                    tick_set = await self.fetcher.fetch(
                        pool.address, tick_indices, block_identifier=block
                    )
        except RetryError as exc:
            raise PipelineRetriesExhausted(pool=pool.address, attempts=self.retries) from exc

        logger.info(
            f"Fetched {len(tick_set)} initialized ticks for pool {pool.address} at block {block}"
        )
        return self.cache.set(pool.address, tick_set, block=block)
