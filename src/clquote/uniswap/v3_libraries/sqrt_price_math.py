"""
Price and amount helpers for exact input swaps.

ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/SqrtPriceMath.sol
"""

import functools

from clquote.constants import MAX_UINT160, MAX_UINT256
from clquote.exceptions import EVMRevertError
from clquote.uniswap.v3_libraries._config import V3_LIB_CACHE_SIZE
from clquote.uniswap.v3_libraries.constants import Q96, Q96_RESOLUTION
from clquote.uniswap.v3_libraries.full_math import div_rounding_up, muldiv, muldiv_rounding_up


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    The amount of token0 between two prices for a liquidity value:
    liquidity / sqrt(lower) - liquidity / sqrt(upper)
    """

    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if not (sqrt_ratio_a_x96 > 0):
        raise EVMRevertError(error="required: sqrt_ratio_a_x96 > 0")

    numerator1 = liquidity << Q96_RESOLUTION
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return div_rounding_up(
            muldiv_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96,
        )
    return muldiv(numerator1, numerator2, sqrt_ratio_b_x96) // sqrt_ratio_a_x96


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool,
) -> int:
    """
    The amount of token1 between two prices for a liquidity value:
    liquidity * (sqrt(upper) - sqrt(lower))
    """

    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if round_up:
        return muldiv_rounding_up(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)
    return muldiv(liquidity, sqrt_ratio_b_x96 - sqrt_ratio_a_x96, Q96)


def _next_sqrt_price_from_amount0_added(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
) -> int:
    # Rounds up, so the price never moves past the exact result
    if amount == 0:
        return sqrt_price_x96

    numerator1 = liquidity << Q96_RESOLUTION
    product = amount * sqrt_price_x96

    if product <= MAX_UINT256:
        denominator = numerator1 + product
        if denominator <= MAX_UINT256:
            return muldiv_rounding_up(numerator1, sqrt_price_x96, denominator)

    return div_rounding_up(numerator1, (numerator1 // sqrt_price_x96) + amount)


def _next_sqrt_price_from_amount1_added(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
) -> int:
    # Rounds down, so the price never moves past the exact result
    quotient = (
        (amount << Q96_RESOLUTION) // liquidity
        if amount <= MAX_UINT160
        else muldiv(amount, Q96, liquidity)
    )
    next_sqrt_price_x96 = sqrt_price_x96 + quotient
    if next_sqrt_price_x96 > MAX_UINT160:
        raise EVMRevertError(error=f"{next_sqrt_price_x96} greater than maximum uint160 value")
    return next_sqrt_price_x96


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool,
) -> int:
    """
    The price after adding `amount_in` of the input token to the pool at the given liquidity.
    """

    if not (sqrt_price_x96 > 0):
        raise EVMRevertError(error="required: sqrt_price_x96 > 0")
    if not (liquidity > 0):
        raise EVMRevertError(error="required: liquidity > 0")

    if zero_for_one:
        return _next_sqrt_price_from_amount0_added(sqrt_price_x96, liquidity, amount_in)
    return _next_sqrt_price_from_amount1_added(sqrt_price_x96, liquidity, amount_in)
