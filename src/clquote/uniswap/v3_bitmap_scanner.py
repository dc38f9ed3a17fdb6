from eth_typing import ChecksumAddress
from web3.types import BlockIdentifier

from clquote.chain_reader import Call, ChainReader
from clquote.checksum_cache import get_checksum_address
from clquote.logging import logger
from clquote.uniswap.v3_libraries.tick_bitmap import decode_bitmap_word, word_range

TICK_BITMAP_PROTOTYPE = "tickBitmap(int16)"


class BitmapScanner:
    """
    Discovers the initialized ticks of a pool by reading every word of its tick bitmap.
    """

    def __init__(self, reader: ChainReader, *, batch_size: int | None = None) -> None:
        self.reader = reader
        self.batch_size = batch_size

    async def scan(
        self,
        pool_address: str,
        tick_spacing: int,
        block_identifier: BlockIdentifier | None = None,
    ) -> list[int]:
        """
        Return the sorted indices of all initialized ticks in the pool's full tick range.

        A failed read raises `ProviderError`, and no partial result is returned.
        """

        pool_address = get_checksum_address(pool_address)
        words = word_range(tick_spacing)

        bitmaps = await self.reader.aggregate_batched(
            [self._bitmap_call(pool_address, word) for word in words],
            block_identifier=block_identifier,
            batch_size=self.batch_size,
            description="bitmap words",
        )

        initialized_ticks: set[int] = set()
        for word, (bitmap,) in zip(words, bitmaps, strict=True):
            if bitmap:
                initialized_ticks.update(decode_bitmap_word(word, bitmap, tick_spacing))

        logger.debug(
            f"Scanned {len(words)} bitmap words for pool {pool_address}, "
            f"found {len(initialized_ticks)} initialized ticks"
        )
        return sorted(initialized_ticks)

    @staticmethod
    def _bitmap_call(pool_address: ChecksumAddress, word: int) -> Call:
        return Call(
            target=pool_address,
            function_prototype=TICK_BITMAP_PROTOTYPE,
            arguments=(word,),
            return_types=("uint256",),
        )
