import time
from collections.abc import Callable

from eth_typing import ChecksumAddress

from clquote.checksum_cache import get_checksum_address
from clquote.config import settings
from clquote.exceptions import ClquoteValueError
from clquote.logging import logger
from clquote.types.aliases import BlockNumber, Seconds
from clquote.uniswap.v3_types import CacheEntry, TickSet


class TickCache:
    """
    Holds the most recently fetched tick set for each pool.

    Entries are replaced whole on every write and never mutated, so a reader always sees a
    complete tick set from a single fetch. A write carrying an older block than the held entry is
    discarded. An entry is fresh while its age is strictly below the staleness threshold.
    Stale entries remain readable through `get`, but `get_fresh` never returns them.
    """

    def __init__(
        self,
        staleness_threshold: Seconds | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if staleness_threshold is None:
            staleness_threshold = settings.staleness_threshold
        assert staleness_threshold is not None
        if staleness_threshold <= 0:
            raise ClquoteValueError(message="Staleness threshold must be positive.")

        self.staleness_threshold: Seconds = staleness_threshold
        self._clock = clock
        self._entries: dict[ChecksumAddress, CacheEntry] = {}

    def __contains__(self, pool: str) -> bool:
        return get_checksum_address(pool) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def age(self, entry: CacheEntry) -> Seconds:
        return self._clock() - entry.fetched_at

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.age(entry) < self.staleness_threshold

    def get_entry(self, pool: str) -> CacheEntry | None:
        return self._entries.get(get_checksum_address(pool))

    def get(self, pool: str) -> tuple[TickSet, Seconds] | None:
        """
        Return the cached tick set and its age in seconds, regardless of freshness.
        """

        entry = self.get_entry(pool)
        if entry is None:
            return None
        return entry.tick_set, self.age(entry)

    def get_fresh(self, pool: str) -> TickSet | None:
        entry = self.get_entry(pool)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry.tick_set

    def set(
        self,
        pool: str,
        tick_set: TickSet,
        block: BlockNumber | None = None,
    ) -> CacheEntry:
        """
        Store the tick set as the pool's entry and return the entry now held by the cache.

        A tick set read at an older block than the current entry is discarded, and the current
        entry is returned unchanged.
        """

        pool = get_checksum_address(pool)
        current = self._entries.get(pool)
        if (
            current is not None
            and current.block is not None
            and block is not None
            and block < current.block
        ):
            logger.debug(
                f"Discarding tick set for pool {pool} from block {block}, "
                f"cache holds block {current.block}"
            )
            return current

        entry = CacheEntry(tick_set=tick_set, fetched_at=self._clock(), block=block)
        self._entries[pool] = entry
        return entry

    def remove(self, pool: str) -> None:
        self._entries.pop(get_checksum_address(pool), None)

    def clear(self) -> None:
        self._entries.clear()
