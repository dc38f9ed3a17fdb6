from collections.abc import Iterable
from types import TracebackType
from typing import Self

from eth_typing import ChecksumAddress
from web3.types import BlockIdentifier

from clquote.chain_reader import Call, ChainReader
from clquote.checksum_cache import get_checksum_address
from clquote.config import settings
from clquote.constants import MAX_INT256
from clquote.erc20 import Token, TokenRegistry, default_token_registry
from clquote.exceptions import ClquoteValueError, ProviderError
from clquote.exceptions.liquidity_pool import (
    EmptyLiquidity,
    InvalidSwapInputAmount,
    LiquidityInvariantViolation,
    LiquidityPoolError,
)
from clquote.exceptions.quote import NoRouteFound
from clquote.logging import logger
from clquote.types.aliases import ChainId, Seconds
from clquote.uniswap.deployments import UniswapV3ExchangeDeployment, get_exchange
from clquote.uniswap.v3_functions import (
    generate_v3_pool_address,
    sort_token_addresses,
    tick_spacing_for_fee,
)
from clquote.uniswap.v3_pipeline import LiquidityPipeline
from clquote.uniswap.v3_pool_model import build_pool_state, simulate_exact_input
from clquote.uniswap.v3_refresher import BackgroundRefresher
from clquote.uniswap.v3_tick_cache import TickCache
from clquote.uniswap.v3_types import PoolDescriptor, PoolState, QuoteResult, TickSet

SLOT0_STRUCT_TYPES = (
    "uint160",  # sqrtPriceX96
    "int24",  # tick
    "uint16",  # observationIndex
    "uint16",  # observationCardinality
    "uint16",  # observationCardinalityNext
    "uint8",  # feeProtocol
    "bool",  # unlocked
)


class UniswapV3Quoter:
    """
    Quotes exact input swaps against Uniswap V3 pools, choosing the fee tier with the greatest
    output.

    Pairs given in `tracked_pairs` (by default, the `tracked_pools` setting) are refreshed in the
    background once the quoter is started.

    Tick sets are served from the cache while fresh, and rebuilt through the liquidity pipeline
    otherwise. The pool's current price, tick and in-range liquidity are always read live. If
    a fresh cached tick set disagrees with the live values, the tick set is rebuilt once before
    the tier is given up.
    """

    def __init__(
        self,
        reader: ChainReader | None = None,
        *,
        chain_id: ChainId | None = None,
        tokens: TokenRegistry | None = None,
        exchange: UniswapV3ExchangeDeployment | None = None,
        fee_tiers: Iterable[int] | None = None,
        cache: TickCache | None = None,
        pipeline: LiquidityPipeline | None = None,
        refresh_interval: Seconds | None = None,
        tracked_pairs: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self.chain_id = chain_id if chain_id is not None else settings.chain_id
        self.reader = reader if reader is not None else ChainReader()
        self.tokens = tokens if tokens is not None else default_token_registry(self.chain_id)
        self.exchange = exchange if exchange is not None else get_exchange(self.chain_id)
        self.fee_tiers = tuple(sorted(fee_tiers if fee_tiers is not None else settings.fee_tiers))
        if not self.fee_tiers:
            raise ClquoteValueError(message="At least one fee tier is required.")

        if pipeline is not None:
            self.pipeline = pipeline
        else:
            self.pipeline = LiquidityPipeline(
                self.reader, cache if cache is not None else TickCache()
            )
        self.cache = self.pipeline.cache
        self.refresher = BackgroundRefresher(self.pipeline, interval=refresh_interval)

        self._pools: dict[ChecksumAddress, PoolDescriptor] = {}
        self._deployed_pools: set[ChecksumAddress] = set()

        if tracked_pairs is None:
            tracked_pairs = [(pair.token_a, pair.token_b) for pair in settings.tracked_pools]
        for token_a, token_b in tracked_pairs:
            self.track_pair(token_a, token_b)

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.stop()

    def start(self) -> None:
        """
        Start refreshing the tracked pools in the background.
        """

        self.refresher.start()

    async def stop(self) -> None:
        await self.refresher.stop()

    @property
    def pools(self) -> tuple[PoolDescriptor, ...]:
        return tuple(self._pools.values())

    def pool_for(self, token_a: Token | str, token_b: Token | str, fee: int) -> PoolDescriptor:
        """
        Describe the pool for the token pair and fee, deriving its address from the factory.
        """

        token0, token1 = sort_token_addresses(
            (self.tokens.resolve(token_a).address, self.tokens.resolve(token_b).address)
        )
        pool_address = generate_v3_pool_address(
            token_addresses=(token0, token1),
            fee=fee,
            factory_or_deployer_address=self.exchange.factory.address,
            init_hash=self.exchange.factory.pool_init_hash,
        )
        if (pool := self._pools.get(pool_address)) is None:
            pool = PoolDescriptor(
                address=pool_address,
                token0=token0,
                token1=token1,
                fee=fee,
                tick_spacing=tick_spacing_for_fee(fee),
            )
            self._pools[pool_address] = pool
        return pool

    def track_pair(self, token_a: Token | str, token_b: Token | str) -> list[PoolDescriptor]:
        """
        Keep the pools of every configured fee tier for the pair refreshed in the background.
        """

        tracked = []
        for fee in self.fee_tiers:
            pool = self.pool_for(token_a, token_b, fee)
            self.refresher.add_pool(pool)
            tracked.append(pool)
        return tracked

    async def describe_pool(self, pool_address: str) -> PoolDescriptor:
        """
        Return the descriptor of a known pool, or read its tokens, fee and tick spacing from the
        chain.
        """

        pool_address = get_checksum_address(pool_address)
        if (pool := self._pools.get(pool_address)) is not None:
            return pool

        (token0,), (token1,), (fee,), (tick_spacing,) = await self.reader.aggregate(
            [
                Call(pool_address, "token0()", return_types=("address",)),
                Call(pool_address, "token1()", return_types=("address",)),
                Call(pool_address, "fee()", return_types=("uint24",)),
                Call(pool_address, "tickSpacing()", return_types=("int24",)),
            ]
        )
        pool = PoolDescriptor(
            address=pool_address,
            token0=get_checksum_address(token0),
            token1=get_checksum_address(token1),
            fee=fee,
            tick_spacing=tick_spacing,
        )
        self._pools[pool_address] = pool
        self._deployed_pools.add(pool_address)
        return pool

    async def refresh_pool(self, pool_address: str) -> TickSet:
        """
        Rebuild the pool's tick set immediately and replace its cache entry.
        """

        pool = await self.describe_pool(pool_address)
        entry = await self.pipeline.run(pool)
        return entry.tick_set

    async def _check_deployed(self, pool: PoolDescriptor) -> None:
        if pool.address in self._deployed_pools:
            return
        if not await self.reader.get_code(pool.address):
            raise EmptyLiquidity(pool.address)
        self._deployed_pools.add(pool.address)

    async def _read_live_values(
        self,
        pool: PoolDescriptor,
        block_identifier: BlockIdentifier | None = None,
    ) -> tuple[int, int, int]:
        slot0, (liquidity,) = await self.reader.aggregate(
            [
                Call(pool.address, "slot0()", return_types=SLOT0_STRUCT_TYPES),
                Call(pool.address, "liquidity()", return_types=("uint128",)),
            ],
            block_identifier=block_identifier,
        )
        sqrt_price_x96, tick, *_ = slot0
        return sqrt_price_x96, tick, liquidity

    async def get_pool_state(self, pool: PoolDescriptor) -> PoolState:
        """
        Build a validated state for the pool from its tick set and its live price and liquidity.
        """

        await self._check_deployed(pool)

        sqrt_price_x96, tick, liquidity = await self._read_live_values(pool)
        if liquidity == 0:
            raise EmptyLiquidity(pool.address)

        if (tick_set := self.cache.get_fresh(pool.address)) is not None:
            try:
                return build_pool_state(
                    pool=pool,
                    sqrt_price_x96=sqrt_price_x96,
                    tick=tick,
                    liquidity=liquidity,
                    tick_set=tick_set,
                )
            except (EmptyLiquidity, LiquidityInvariantViolation) as exc:
                logger.info(
                    f"Cached ticks for pool {pool.address} are out of date ({exc}), resyncing"
                )

        # Read the live values at the pipeline's block so that both halves of the state agree
        entry = await self.pipeline.run(pool)
        sqrt_price_x96, tick, liquidity = await self._read_live_values(
            pool, block_identifier=entry.block
        )
        return build_pool_state(
            pool=pool,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            liquidity=liquidity,
            tick_set=entry.tick_set,
            block=entry.block,
        )

    async def quote_exact_input(
        self,
        token_in: Token | str,
        token_out: Token | str,
        amount_in: int,
        fee: int,
    ) -> QuoteResult:
        """
        Quote the swap through the pool of a single fee tier.
        """

        token_in = self.tokens.resolve(token_in)
        token_out = self.tokens.resolve(token_out)

        pool = self.pool_for(token_in, token_out, fee)
        state = await self.get_pool_state(pool)
        amount_out, execution_price = simulate_exact_input(state, token_in.address, amount_in)
        return QuoteResult(
            pool=pool,
            token_in=token_in,
            token_out=token_out,
            input_amount=amount_in,
            output_amount=amount_out,
            execution_price=execution_price,
        )

    async def get_best_quote(
        self,
        token_in: Token | str,
        token_out: Token | str,
        amount_in: int,
    ) -> QuoteResult:
        """
        Quote the swap through every configured fee tier and return the quote with the greatest
        output. A tier that fails to produce a quote is skipped. When tiers tie, the lowest fee
        wins.

        Raises:
            NoRouteFound: no tier produced a quote
        """

        token_in = self.tokens.resolve(token_in)
        token_out = self.tokens.resolve(token_out)
        if token_in.address == token_out.address:
            raise ClquoteValueError(message="The input and output tokens must differ.")
        if not (0 < amount_in <= MAX_INT256):
            raise InvalidSwapInputAmount

        best_quote: QuoteResult | None = None
        for fee in self.fee_tiers:
            try:
                quote = await self.quote_exact_input(token_in, token_out, amount_in, fee)
            except (ProviderError, LiquidityPoolError) as exc:
                logger.warning(f"Skipping {fee} fee tier for {token_in} -> {token_out}: {exc}")
                continue

            logger.debug(
                f"{fee} fee tier: {amount_in} {token_in} -> {quote.output_amount} {token_out}"
            )
            if best_quote is None or quote.output_amount > best_quote.output_amount:
                best_quote = quote

        if best_quote is None:
            raise NoRouteFound(token_in=token_in.symbol, token_out=token_out.symbol)
        return best_quote
