"""
Conversions between ticks and Q64.96 square root prices.

ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/TickMath.sol
"""

import functools

from clquote.constants import MAX_TICK, MAX_UINT256, MIN_TICK
from clquote.exceptions import EVMRevertError
from clquote.uniswap.v3_libraries._config import V3_LIB_CACHE_SIZE

__all__ = (
    "MAX_SQRT_RATIO",
    "MAX_TICK",
    "MIN_SQRT_RATIO",
    "MIN_TICK",
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
)

MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Error bounds of the log_sqrt10001 approximation, valid for prices in (2^-64, 2^64)
_LOG_ERROR_LOW = 3402992956809132418596140100660247210
_LOG_ERROR_HIGH = 291339464771989622907027621153398088495

# 1/sqrt(1.0001)^(2^i) in Q128.128 form, for each bit i of the absolute tick above bit 0
_RATIO_MULTIPLIERS = (
    (2, 340248342086729790484326174814286782778),
    (4, 340214320654664324051920982716015181260),
    (8, 340146287995602323631171512101879684304),
    (16, 340010263488231146823593991679159461444),
    (32, 339738377640345403697157401104375502016),
    (64, 339195258003219555707034227454543997025),
    (128, 338111622100601834656805679988414885971),
    (256, 335954724994790223023589805789778977700),
    (512, 331682121138379247127172139078559817300),
    (1024, 323299236684853023288211250268160618739),
    (2048, 307163716377032989948697243942600083929),
    (4096, 277268403626896220162999269216087595045),
    (8192, 225923453940442621947126027127485391333),
    (16384, 149997214084966997727330242082538205943),
    (32768, 66119101136024775622716233608466517926),
    (65536, 12847376061809297530290974190478138313),
    (131072, 485053260817066172746253684029974020),
    (262144, 691415978906521570653435304214168),
    (524288, 1404880482679654955896180642),
)


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Calculate sqrt(1.0001^tick) * 2^96.
    """

    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise EVMRevertError(error="T")

    ratio = 340265354078544963557816517032075149313 if abs_tick & 0x1 else 1 << 128
    for mask, multiplier in _RATIO_MULTIPLIERS:
        if abs_tick & mask:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so that get_tick_at_sqrt_ratio of the result is consistent
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


@functools.lru_cache(maxsize=V3_LIB_CACHE_SIZE)
def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Calculate the greatest tick such that get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96.
    """

    if not (MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO):
        raise EVMRevertError(error="R")

    ratio = sqrt_price_x96 << 32

    msb = ratio.bit_length() - 1
    r = ratio >> (msb - 127) if msb >= 128 else ratio << (127 - msb)  # noqa: PLR2004

    log_2 = (msb - 128) << 64
    for bit in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << bit
        r >>= f

    log_sqrt10001 = log_2 * 255738958999603826347141  # 128.128 number

    tick_low = (log_sqrt10001 - _LOG_ERROR_LOW) >> 128
    tick_high = (log_sqrt10001 + _LOG_ERROR_HIGH) >> 128

    if tick_low == tick_high:
        return tick_low
    return tick_high if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96 else tick_low
