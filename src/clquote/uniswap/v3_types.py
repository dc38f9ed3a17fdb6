import dataclasses
from collections.abc import Iterator
from fractions import Fraction
from typing import TYPE_CHECKING, overload

import pydantic
from eth_typing import ChecksumAddress

from clquote.exceptions import ClquoteValueError
from clquote.types.aliases import BlockNumber, Seconds
from clquote.validation.evm_values import (
    ValidatedInt128,
    ValidatedTick,
    ValidatedUint128,
)

if TYPE_CHECKING:
    from clquote.erc20.token import Token

type Pip = int  # V3 pool fees are expressed in pips equaling one hundredth of 1%
type Liquidity = int
type LiquidityGross = int
type LiquidityNet = int
type SqrtPriceX96 = int
type TickIndex = int


class Tick(pydantic.BaseModel, frozen=True):
    """
    The liquidity recorded at an initialized tick.
    """

    index: ValidatedTick
    liquidity_gross: ValidatedUint128
    liquidity_net: ValidatedInt128


@dataclasses.dataclass(slots=True, frozen=True)
class TickSet:
    """
    The complete set of initialized ticks for a pool, strictly increasing by index.
    """

    ticks: tuple[Tick, ...] = ()

    def __post_init__(self) -> None:
        for lower, upper in zip(self.ticks, self.ticks[1:], strict=False):
            if upper.index <= lower.index:
                raise ClquoteValueError(
                    message=(
                        f"Ticks must be strictly increasing, found {upper.index} "
                        f"after {lower.index}"
                    )
                )

    def __len__(self) -> int:
        return len(self.ticks)

    def __iter__(self) -> Iterator[Tick]:
        return iter(self.ticks)

    @overload
    def __getitem__(self, item: int) -> Tick: ...
    @overload
    def __getitem__(self, item: slice) -> tuple[Tick, ...]: ...
    def __getitem__(self, item: int | slice) -> Tick | tuple[Tick, ...]:
        return self.ticks[item]

    @property
    def indices(self) -> tuple[TickIndex, ...]:
        return tuple(tick.index for tick in self.ticks)

    def liquidity_at(self, tick: TickIndex) -> int:
        """
        The cumulative liquidity net of every initialized tick at or below `tick`, which is the
        in-range liquidity of a pool whose current tick is `tick`.
        """

        return sum(t.liquidity_net for t in self.ticks if t.index <= tick)


@dataclasses.dataclass(slots=True, frozen=True)
class PoolDescriptor:
    """
    Immutable metadata for a pool.
    """

    address: ChecksumAddress
    token0: ChecksumAddress
    token1: ChecksumAddress
    fee: Pip
    tick_spacing: int


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class PoolState:
    address: ChecksumAddress
    token0: ChecksumAddress
    token1: ChecksumAddress
    fee: Pip
    tick_spacing: int
    sqrt_price_x96: SqrtPriceX96
    tick: TickIndex
    liquidity: Liquidity
    tick_set: TickSet
    block: BlockNumber | None = None


@dataclasses.dataclass(slots=True, frozen=True)
class CacheEntry:
    tick_set: TickSet
    fetched_at: Seconds
    block: BlockNumber | None = None


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class QuoteResult:
    pool: PoolDescriptor
    token_in: "Token"
    token_out: "Token"
    input_amount: int
    output_amount: int
    execution_price: Fraction

    @property
    def fee(self) -> Pip:
        return self.pool.fee

    @property
    def decimal_price(self) -> Fraction:
        """
        The execution price in whole token units of output per whole unit of input.
        """

        return self.execution_price * Fraction(
            10**self.token_in.decimals, 10**self.token_out.decimals
        )
