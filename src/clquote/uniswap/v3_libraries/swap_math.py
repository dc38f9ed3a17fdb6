from clquote.constants import FEE_DENOMINATOR
from clquote.exceptions import EVMRevertError
from clquote.uniswap.v3_libraries import full_math, sqrt_price_math

type AmountIn = int
type AmountOut = int
type FeeTaken = int
type SqrtPriceX96 = int


def compute_swap_step(
    sqrt_ratio_x96_current: int,
    sqrt_ratio_x96_target: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int,
) -> tuple[SqrtPriceX96, AmountIn, AmountOut, FeeTaken]:
    """
    Swap as much of `amount_remaining` as possible between the current price and the target price
    within a single liquidity range, for an exact input amount.

    Returns the price reached, the amount taken in (excluding the fee), the amount paid out, and
    the fee taken.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/SwapMath.sol
    """

    if amount_remaining < 0:
        raise EVMRevertError(error="exact output swaps are not supported")
    if liquidity < 0:
        raise EVMRevertError(error="liquidity must be >= 0")

    zero_for_one = sqrt_ratio_x96_current >= sqrt_ratio_x96_target

    amount_remaining_less_fee = full_math.muldiv(
        amount_remaining, FEE_DENOMINATOR - fee_pips, FEE_DENOMINATOR
    )
    if zero_for_one:
        amount_in = sqrt_price_math.get_amount0_delta(
            sqrt_ratio_x96_target, sqrt_ratio_x96_current, liquidity, True
        )
    else:
        amount_in = sqrt_price_math.get_amount1_delta(
            sqrt_ratio_x96_current, sqrt_ratio_x96_target, liquidity, True
        )

    if amount_remaining_less_fee >= amount_in:
        sqrt_ratio_x96_next = sqrt_ratio_x96_target
    else:
        sqrt_ratio_x96_next = sqrt_price_math.get_next_sqrt_price_from_input(
            sqrt_ratio_x96_current,
            liquidity,
            amount_remaining_less_fee,
            zero_for_one,
        )

    reached_target_price = sqrt_ratio_x96_next == sqrt_ratio_x96_target

    if zero_for_one:
        if not reached_target_price:
            amount_in = sqrt_price_math.get_amount0_delta(
                sqrt_ratio_x96_next, sqrt_ratio_x96_current, liquidity, True
            )
        amount_out = sqrt_price_math.get_amount1_delta(
            sqrt_ratio_x96_next, sqrt_ratio_x96_current, liquidity, False
        )
    else:
        if not reached_target_price:
            amount_in = sqrt_price_math.get_amount1_delta(
                sqrt_ratio_x96_current, sqrt_ratio_x96_next, liquidity, True
            )
        amount_out = sqrt_price_math.get_amount0_delta(
            sqrt_ratio_x96_current, sqrt_ratio_x96_next, liquidity, False
        )

    if reached_target_price:
        fee_amount = full_math.muldiv_rounding_up(
            amount_in, fee_pips, FEE_DENOMINATOR - fee_pips
        )
    else:
        # The target was not reached, so the remainder of the input is taken as the fee
        fee_amount = amount_remaining - amount_in

    return sqrt_ratio_x96_next, amount_in, amount_out, fee_amount
