import dataclasses
import statistics
import time
from collections.abc import Callable, Sequence

import tqdm

from clquote.chain_reader import ChainReader
from clquote.exceptions import ClquoteValueError, ProviderError
from clquote.logging import logger
from clquote.uniswap.v3_bitmap_scanner import BitmapScanner
from clquote.uniswap.v3_tick_fetcher import TickDataFetcher
from clquote.uniswap.v3_types import PoolDescriptor, TickSet

DEFAULT_BATCH_SIZES = (50, 100, 150, 200, 250, 300, 400, 500, 600, 700)
DEFAULT_ITERATIONS = 3


@dataclasses.dataclass(slots=True, frozen=True)
class BatchSizeTiming:
    batch_size: int
    scan_seconds: float
    fetch_seconds: float
    tick_count: int

    @property
    def total_seconds(self) -> float:
        return self.scan_seconds + self.fetch_seconds


async def benchmark_batch_sizes(
    reader: ChainReader,
    pool: PoolDescriptor,
    *,
    batch_sizes: Sequence[int] = DEFAULT_BATCH_SIZES,
    iterations: int = DEFAULT_ITERATIONS,
    clock: Callable[[], float] = time.perf_counter,
    progress_bar: bool = True,
) -> list[BatchSizeTiming]:
    """
    Time a full bitmap scan and tick fetch of the pool for each batch size, averaged over the given
    number of iterations. Results are sorted from fastest to slowest.

    All runs read the same block, and every batch size must produce an identical tick set.
    """

    if not batch_sizes:
        raise ClquoteValueError(message="At least one batch size is required.")
    if iterations < 1:
        raise ClquoteValueError(message="At least one iteration is required.")

    block = await reader.block_number()
    reference_tick_set: TickSet | None = None
    timings: list[BatchSizeTiming] = []

    with tqdm.tqdm(
        total=len(batch_sizes) * iterations,
        desc="Benchmarking batch sizes",
        bar_format="{desc}: {percentage:3.1f}% |{bar}| {n_fmt}/{total_fmt}",
        disable=not progress_bar,
    ) as pbar:
        for batch_size in batch_sizes:
            scanner = BitmapScanner(reader, batch_size=batch_size)
            fetcher = TickDataFetcher(reader, batch_size=batch_size)
            scan_times = []
            fetch_times = []
            for _ in range(iterations):
                start = clock()
                tick_indices = await scanner.scan(
                    pool.address, pool.tick_spacing, block_identifier=block
                )
                scanned = clock()
                tick_set = await fetcher.fetch(pool.address, tick_indices, block_identifier=block)
                fetched = clock()

                if reference_tick_set is None:
                    reference_tick_set = tick_set
                elif tick_set != reference_tick_set:
                    raise ProviderError(
                        message=f"Batch size {batch_size} produced a different tick set at "
                        f"block {block}"
                    )

                scan_times.append(scanned - start)
                fetch_times.append(fetched - scanned)
                pbar.update(1)

            timing = BatchSizeTiming(
                batch_size=batch_size,
                scan_seconds=statistics.fmean(scan_times),
                fetch_seconds=statistics.fmean(fetch_times),
                tick_count=len(tick_set),
            )
            logger.debug(
                f"Batch size {batch_size}: scan {timing.scan_seconds:.3f}s, "
                f"fetch {timing.fetch_seconds:.3f}s"
            )
            timings.append(timing)

    return sorted(timings, key=lambda timing: timing.total_seconds)
