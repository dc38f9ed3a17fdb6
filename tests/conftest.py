import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

import pytest
from eth_typing import ChecksumAddress
from web3.types import BlockIdentifier

from clquote.chain_reader import Call, ChainReader
from clquote.checksum_cache import get_checksum_address
from clquote.connection import async_connection_manager
from clquote.constants import MULTICALL3_ADDRESS
from clquote.erc20.token import ARBITRUM_ONE_TOKENS, Token
from clquote.exceptions import ProviderError
from clquote.logging import logger
from clquote.uniswap.deployments import ArbitrumUniswapV3
from clquote.uniswap.v3_functions import (
    generate_v3_pool_address,
    sort_token_addresses,
    tick_spacing_for_fee,
)
from clquote.uniswap.v3_libraries.tick_bitmap import encode_bitmap_words
from clquote.uniswap.v3_libraries.tick_math import get_sqrt_ratio_at_tick
from clquote.uniswap.v3_types import PoolDescriptor, Tick, TickSet

ARBITRUM_TOKENS = {token.symbol: token for token in ARBITRUM_ONE_TOKENS}
ARB = ARBITRUM_TOKENS["ARB"]
USDC = ARBITRUM_TOKENS["USDC"]
WETH = ARBITRUM_TOKENS["WETH"]

FAKE_POOL_CODE = bytes.fromhex("6080604052")


@pytest.fixture(autouse=True)
def _initialize_and_reset_after_each_test():
    """
    Before each test, clear/reset global values and singletons
    """
    async_connection_manager.connections.clear()
    async_connection_manager._default_chain_id = None


@pytest.fixture(scope="session", autouse=True)
def _set_clquote_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    logger.setLevel(logging.DEBUG)


def arbitrum_pool(token_a: Token, token_b: Token, fee: int) -> PoolDescriptor:
    """
    Describe the Arbitrum Uniswap V3 pool for the pair and fee, with its address derived from the
    factory.
    """

    token0, token1 = sort_token_addresses((token_a.address, token_b.address))
    return PoolDescriptor(
        address=generate_v3_pool_address(
            token_addresses=(token0, token1),
            fee=fee,
            factory_or_deployer_address=ArbitrumUniswapV3.factory.address,
            init_hash=ArbitrumUniswapV3.factory.pool_init_hash,
        ),
        token0=token0,
        token1=token1,
        fee=fee,
        tick_spacing=tick_spacing_for_fee(fee),
    )


@dataclasses.dataclass(slots=True, frozen=True)
class Position:
    tick_lower: int
    tick_upper: int
    liquidity: int


class FakePool:
    """
    An in-memory pool assembled from liquidity positions. Answers the same views as the pool
    contract: `tickBitmap`, `ticks`, `slot0`, `liquidity` and the immutables.
    """

    def __init__(
        self,
        descriptor: PoolDescriptor,
        positions: Iterable[Position],
        tick: int,
        *,
        sqrt_price_x96: int | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.update(positions, tick, sqrt_price_x96=sqrt_price_x96)

    @property
    def address(self) -> ChecksumAddress:
        return self.descriptor.address

    def update(
        self,
        positions: Iterable[Position],
        tick: int,
        *,
        sqrt_price_x96: int | None = None,
    ) -> None:
        positions = tuple(positions)

        ticks: dict[int, tuple[int, int]] = {}
        for position in positions:
            for index, net in (
                (position.tick_lower, position.liquidity),
                (position.tick_upper, -position.liquidity),
            ):
                gross_before, net_before = ticks.get(index, (0, 0))
                ticks[index] = (gross_before + position.liquidity, net_before + net)

        self.ticks = ticks
        self.bitmap = encode_bitmap_words(ticks, self.descriptor.tick_spacing)
        self.tick = tick
        self.sqrt_price_x96 = (
            sqrt_price_x96 if sqrt_price_x96 is not None else get_sqrt_ratio_at_tick(tick)
        )
        self.liquidity = sum(
            position.liquidity
            for position in positions
            if position.tick_lower <= tick < position.tick_upper
        )

    def tick_set(self) -> TickSet:
        return TickSet(
            tuple(
                Tick(index=index, liquidity_gross=gross, liquidity_net=net)
                for index, (gross, net) in sorted(self.ticks.items())
            )
        )

    def respond(self, call: Call) -> tuple[Any, ...]:
        match call.function_prototype:
            case "tickBitmap(int16)":
                (word,) = call.arguments
                return (self.bitmap.get(word, 0),)
            case "ticks(int24)":
                (index,) = call.arguments
                gross, net = self.ticks.get(index, (0, 0))
                return (gross, net, 0, 0, 0, 0, 0, gross > 0)
            case "slot0()":
                return (self.sqrt_price_x96, self.tick, 0, 1, 1, 0, True)
            case "liquidity()":
                return (self.liquidity,)
            case "token0()":
                return (self.descriptor.token0,)
            case "token1()":
                return (self.descriptor.token1,)
            case "fee()":
                return (self.descriptor.fee,)
            case "tickSpacing()":
                return (self.descriptor.tick_spacing,)
        raise ProviderError(message=f"Call to {call.function_prototype} at {self.address} reverted")


class FakeChainReader(ChainReader):
    """
    A chain reader answering aggregate calls from in-memory pools and tokens.

    Records the size and block of every aggregate round, and fails the rounds listed in
    `failing_rounds` (or every read when `fail_always` is set) with a `ProviderError`.
    """

    def __init__(
        self,
        pools: Iterable[FakePool] = (),
        *,
        batch_size: int = 150,
        max_concurrent_batches: int = 1,
        block_number: int = 1_000_000,
    ) -> None:
        super().__init__(
            multicall_address=MULTICALL3_ADDRESS,
            batch_size=batch_size,
            max_concurrent_batches=max_concurrent_batches,
        )
        self.pools: dict[ChecksumAddress, FakePool] = {pool.address: pool for pool in pools}
        self.tokens: dict[ChecksumAddress, tuple[str, int]] = {}
        self.current_block = block_number
        self.round_sizes: list[int] = []
        self.round_blocks: list[BlockIdentifier | None] = []
        self.failing_rounds: set[int] = set()
        self.fail_always = False
        self.on_round: Callable[[int], None] | None = None

    def add_pool(self, pool: FakePool) -> None:
        self.pools[pool.address] = pool

    def add_token(self, address: str, symbol: str, decimals: int) -> None:
        self.tokens[get_checksum_address(address)] = (symbol, decimals)

    async def block_number(self) -> int:
        await asyncio.sleep(0)
        if self.fail_always:
            raise ProviderError(message="injected block number failure")
        return self.current_block

    async def get_code(
        self,
        address: ChecksumAddress,
        block_identifier: BlockIdentifier | None = None,
    ) -> bytes:
        await asyncio.sleep(0)
        return FAKE_POOL_CODE if get_checksum_address(address) in self.pools else b""

    async def aggregate(
        self,
        calls: Sequence[Call],
        block_identifier: BlockIdentifier | None = None,
    ) -> list[tuple[Any, ...]]:
        if not calls:
            return []

        round_index = len(self.round_sizes)
        self.round_sizes.append(len(calls))
        self.round_blocks.append(block_identifier)
        if self.on_round is not None:
            self.on_round(round_index)

        await asyncio.sleep(0)

        if self.fail_always or round_index in self.failing_rounds:
            raise ProviderError(message=f"injected failure in round {round_index}")
        return [self._respond(call) for call in calls]

    def _respond(self, call: Call) -> tuple[Any, ...]:
        if (pool := self.pools.get(call.target)) is not None:
            return pool.respond(call)
        if (token := self.tokens.get(call.target)) is not None:
            symbol, decimals = token
            match call.function_prototype:
                case "symbol()":
                    return (symbol,)
                case "decimals()":
                    return (decimals,)
        raise ProviderError(message=f"Call to {call.function_prototype} at {call.target} reverted")
