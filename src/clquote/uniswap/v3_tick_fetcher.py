from collections.abc import Sequence

from web3.types import BlockIdentifier

from clquote.chain_reader import Call, ChainReader
from clquote.checksum_cache import get_checksum_address
from clquote.logging import logger
from clquote.uniswap.v3_types import Tick, TickSet

TICKS_PROTOTYPE = "ticks(int24)"
TICK_STRUCT_TYPES = (
    "uint128",  # liquidityGross
    "int128",  # liquidityNet
    "uint256",  # feeGrowthOutside0X128
    "uint256",  # feeGrowthOutside1X128
    "int56",  # tickCumulativeOutside
    "uint160",  # secondsPerLiquidityOutsideX128
    "uint32",  # secondsOutside
    "bool",  # initialized
)


class TickDataFetcher:
    """
    Reads the liquidity recorded at each of a pool's initialized ticks.
    """

    def __init__(self, reader: ChainReader, *, batch_size: int | None = None) -> None:
        self.reader = reader
        self.batch_size = batch_size

    async def fetch(
        self,
        pool_address: str,
        tick_indices: Sequence[int],
        block_identifier: BlockIdentifier | None = None,
    ) -> TickSet:
        """
        Fetch one tick record per index. The indices must be in ascending order, as produced by
        `BitmapScanner.scan`.

        A failed read raises `ProviderError`, and everything fetched so far is discarded.
        """

        if not tick_indices:
            return TickSet()

        pool_address = get_checksum_address(pool_address)
        results = await self.reader.aggregate_batched(
            [
                Call(
                    target=pool_address,
                    function_prototype=TICKS_PROTOTYPE,
                    arguments=(tick,),
                    return_types=TICK_STRUCT_TYPES,
                )
                for tick in tick_indices
            ],
            block_identifier=block_identifier,
            batch_size=self.batch_size,
            description="ticks",
        )

        tick_set = TickSet(
            tuple(
                Tick(
                    index=index,
                    liquidity_gross=liquidity_gross,
                    liquidity_net=liquidity_net,
                )
                for index, (liquidity_gross, liquidity_net, *_) in zip(
                    tick_indices, results, strict=True
                )
            )
        )
        logger.debug(f"Fetched {len(tick_set)} ticks for pool {pool_address}")
        return tick_set
