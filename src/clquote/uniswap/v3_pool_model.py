"""
Assembly of a validated pool state from chain data, and exact input swap simulation against it.

The swap walk is adapted from the UniswapV3Pool.sol contract at
https://github.com/Uniswap/v3-core/blob/main/contracts/UniswapV3Pool.sol
"""

import dataclasses
from fractions import Fraction

from clquote.checksum_cache import get_checksum_address
from clquote.constants import MAX_INT256, MAX_TICK, MIN_TICK
from clquote.exceptions import ClquoteValueError, EVMRevertError
from clquote.exceptions.liquidity_pool import (
    EmptyLiquidity,
    IncompleteSwap,
    InvalidPoolState,
    InvalidSwapInputAmount,
    LiquidityInvariantViolation,
    TickAlignmentError,
)
from clquote.logging import logger
from clquote.types.aliases import BlockNumber
from clquote.uniswap.v3_libraries.liquidity_math import add_delta
from clquote.uniswap.v3_libraries.swap_math import compute_swap_step
from clquote.uniswap.v3_libraries.tick_bitmap import gen_ticks
from clquote.uniswap.v3_libraries.tick_math import (
    MAX_SQRT_RATIO,
    MIN_SQRT_RATIO,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
)
from clquote.uniswap.v3_types import (
    Liquidity,
    PoolDescriptor,
    PoolState,
    SqrtPriceX96,
    TickIndex,
    TickSet,
)


@dataclasses.dataclass(slots=True)
class SwapState:
    amount_remaining: int
    amount_out: int
    sqrt_price_x96: int
    tick: int
    liquidity: int


def _check_price_matches_tick(sqrt_price_x96: int, tick: int) -> None:
    if not (MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO):
        raise LiquidityInvariantViolation(
            message=f"Price {sqrt_price_x96} is outside of the valid sqrt price range."
        )

    price_tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
    if tick == price_tick:
        return
    # A swap that ends exactly on a tick boundary while moving down leaves the price at the
    # boundary and the tick one below it
    if tick == price_tick - 1 and get_sqrt_ratio_at_tick(price_tick) == sqrt_price_x96:
        return
    raise LiquidityInvariantViolation(
        message=f"Tick {tick} is inconsistent with price {sqrt_price_x96} (tick {price_tick})."
    )


def _check_liquidity_continuity(tick_set: TickSet, tick: int, liquidity: int) -> None:
    running_liquidity = 0
    liquidity_at_tick = 0
    for initialized_tick in tick_set:
        running_liquidity += initialized_tick.liquidity_net
        if running_liquidity < 0:
            raise LiquidityInvariantViolation(
                message=f"Cumulative liquidity is negative at tick {initialized_tick.index}."
            )
        if initialized_tick.index <= tick:
            liquidity_at_tick = running_liquidity

    if running_liquidity != 0:
        raise LiquidityInvariantViolation(
            message=f"Liquidity net of all ticks sums to {running_liquidity}, expected 0."
        )
    if liquidity_at_tick != liquidity:
        raise LiquidityInvariantViolation(
            message=(
                f"Cumulative liquidity at tick {tick} is {liquidity_at_tick}, "
                f"pool reports {liquidity}."
            )
        )


def build_pool_state(
    *,
    pool: PoolDescriptor,
    sqrt_price_x96: SqrtPriceX96,
    tick: TickIndex,
    liquidity: Liquidity,
    tick_set: TickSet,
    block: BlockNumber | None = None,
) -> PoolState:
    """
    Validate the pool's current price, tick and in-range liquidity against its complete tick set,
    and assemble them into a pool state.

    Raises:
        InvalidPoolState: the current tick lies outside of the valid tick range
        TickAlignmentError: an initialized tick is not a multiple of the tick spacing
        EmptyLiquidity: the pool has no in-range liquidity or no initialized ticks
        LiquidityInvariantViolation: the price, tick and liquidity are inconsistent with each
            other or with the tick set
    """

    if not (MIN_TICK <= tick <= MAX_TICK):
        raise InvalidPoolState(message=f"Tick {tick} is outside of [{MIN_TICK}, {MAX_TICK}].")

    for initialized_tick in tick_set:
        if initialized_tick.index % pool.tick_spacing != 0:
            raise TickAlignmentError(tick=initialized_tick.index, tick_spacing=pool.tick_spacing)

    if liquidity == 0 or not tick_set:
        raise EmptyLiquidity(pool.address)

    _check_price_matches_tick(sqrt_price_x96, tick)
    _check_liquidity_continuity(tick_set, tick, liquidity)

    return PoolState(
        address=pool.address,
        token0=pool.token0,
        token1=pool.token1,
        fee=pool.fee,
        tick_spacing=pool.tick_spacing,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        liquidity=liquidity,
        tick_set=tick_set,
        block=block,
    )


def _zero_for_one(state: PoolState, token_in: str) -> bool:
    token_in = get_checksum_address(token_in)
    if token_in == state.token0:
        return True
    if token_in == state.token1:
        return False
    raise ClquoteValueError(message=f"Token {token_in} is not held by pool {state.address}.")


def swap_is_viable(state: PoolState, zero_for_one: bool) -> bool:
    """
    Check if the pool can perform a swap in the given direction: the price is not already at its
    limit, and liquidity is either in range or available at an initialized tick ahead.
    """

    if zero_for_one:
        if state.sqrt_price_x96 <= MIN_SQRT_RATIO + 1:
            return False
        return state.liquidity > 0 or any(tick.index <= state.tick for tick in state.tick_set)

    if state.sqrt_price_x96 >= MAX_SQRT_RATIO - 1:
        return False
    return state.liquidity > 0 or any(tick.index > state.tick for tick in state.tick_set)


def simulate_exact_input(
    state: PoolState,
    token_in: str,
    amount_in: int,
) -> tuple[int, Fraction]:
    """
    Calculate the output of swapping exactly `amount_in` of `token_in` through the pool, and the
    execution price (output per unit of input, in raw token units).

    The pool fee is charged on every step. The state is not modified.

    Raises:
        InvalidSwapInputAmount: the input amount is not positive or does not fit in an int256
        IncompleteSwap: the known liquidity is exhausted before the input is consumed
        LiquidityInvariantViolation: crossing a tick would make the in-range liquidity negative
    """

    if not (0 < amount_in <= MAX_INT256):
        raise InvalidSwapInputAmount

    zero_for_one = _zero_for_one(state, token_in)
    sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

    tick_indices = state.tick_set.indices
    liquidity_net = {tick.index: tick.liquidity_net for tick in state.tick_set}
    lowest_tick, highest_tick = tick_indices[0], tick_indices[-1]

    swap_state = SwapState(
        amount_remaining=amount_in,
        amount_out=0,
        sqrt_price_x96=state.sqrt_price_x96,
        tick=state.tick,
        liquidity=state.liquidity,
    )
    ticks_along_swap_path = gen_ticks(
        initialized_ticks=tick_indices,
        starting_tick=state.tick,
        tick_spacing=state.tick_spacing,
        less_than_or_equal=zero_for_one,
    )

    while (
        swap_state.amount_remaining != 0 and swap_state.sqrt_price_x96 != sqrt_price_limit_x96
    ):
        if swap_state.liquidity == 0 and (
            swap_state.tick < lowest_tick if zero_for_one else swap_state.tick >= highest_tick
        ):
            # No initialized ticks remain in the swap direction
            break

        sqrt_price_start_x96 = swap_state.sqrt_price_x96
        tick_next, initialized = next(ticks_along_swap_path)

        # The word boundaries are not aware of the tick range bounds
        tick_next = max(MIN_TICK, tick_next) if zero_for_one else min(MAX_TICK, tick_next)
        sqrt_price_next_x96 = get_sqrt_ratio_at_tick(tick_next)

        if zero_for_one:
            sqrt_price_target_x96 = max(sqrt_price_next_x96, sqrt_price_limit_x96)
        else:
            sqrt_price_target_x96 = min(sqrt_price_next_x96, sqrt_price_limit_x96)

        swap_state.sqrt_price_x96, step_amount_in, step_amount_out, step_fee = compute_swap_step(
            sqrt_ratio_x96_current=swap_state.sqrt_price_x96,
            sqrt_ratio_x96_target=sqrt_price_target_x96,
            liquidity=swap_state.liquidity,
            amount_remaining=swap_state.amount_remaining,
            fee_pips=state.fee,
        )
        swap_state.amount_remaining -= step_amount_in + step_fee
        swap_state.amount_out += step_amount_out

        if swap_state.sqrt_price_x96 == sqrt_price_next_x96:
            if initialized:
                net = liquidity_net[tick_next]
                try:
                    swap_state.liquidity = add_delta(
                        swap_state.liquidity, -net if zero_for_one else net
                    )
                except EVMRevertError as exc:
                    raise LiquidityInvariantViolation(
                        message=f"Crossing tick {tick_next} leaves the pool with invalid liquidity."
                    ) from exc
            swap_state.tick = tick_next - 1 if zero_for_one else tick_next
        elif swap_state.sqrt_price_x96 != sqrt_price_start_x96:
            swap_state.tick = get_tick_at_sqrt_ratio(swap_state.sqrt_price_x96)

    if swap_state.amount_remaining != 0:
        logger.debug(
            f"Swap through pool {state.address} left {swap_state.amount_remaining} of "
            f"{amount_in} unconsumed"
        )
        raise IncompleteSwap(
            amount_in=amount_in - swap_state.amount_remaining,
            amount_out=swap_state.amount_out,
        )

    return swap_state.amount_out, Fraction(swap_state.amount_out, amount_in)
