import bisect
from collections.abc import Generator, Iterable, Sequence
from functools import cache
from itertools import count

from clquote.constants import MAX_TICK, MAX_UINT256, MIN_TICK
from clquote.exceptions import ClquoteValueError
from clquote.exceptions.liquidity_pool import TickAlignmentError


def compress(tick: int, tick_spacing: int) -> int:
    """
    Divide the tick by the spacing, rounding toward negative infinity.
    """

    # Python floor division already rounds toward negative infinity, unlike the Solidity division
    # which truncates toward zero and needs a correction for negative ticks
    return tick // tick_spacing


@cache
def position(tick: int) -> tuple[int, int]:
    """
    Computes the position in the tick initialization bitmap for the given compressed tick.
    """
    return (
        tick >> 8,  # word_pos
        tick % 256,  # bit_pos
    )


@cache
def word_range(tick_spacing: int) -> range:
    """
    The range of bitmap word positions that can hold initialized ticks for the given spacing.
    """

    if tick_spacing <= 0:
        raise ClquoteValueError(message=f"Invalid tick spacing {tick_spacing}")

    min_word, _ = position(compress(MIN_TICK, tick_spacing))
    max_word, _ = position(compress(MAX_TICK, tick_spacing))
    return range(min_word, max_word + 1)


def decode_bitmap_word(word: int, bitmap: int, tick_spacing: int) -> list[int]:
    """
    Convert the set bits of a bitmap word into tick indices, in ascending order. Bits that map
    outside of [MIN_TICK, MAX_TICK] are discarded.
    """

    if not (0 <= bitmap <= MAX_UINT256):
        raise ClquoteValueError(message=f"Bitmap {bitmap} is not a valid uint256")

    ticks = []
    while bitmap:
        lowest_set_bit = bitmap & -bitmap
        bit_pos = lowest_set_bit.bit_length() - 1
        tick = (256 * word + bit_pos) * tick_spacing
        if MIN_TICK <= tick <= MAX_TICK:
            ticks.append(tick)
        bitmap ^= lowest_set_bit
    return ticks


def encode_bitmap_words(ticks: Iterable[int], tick_spacing: int) -> dict[int, int]:
    """
    Build the bitmap words that mark the given ticks as initialized. Words without a set bit are
    omitted.
    """

    words: dict[int, int] = {}
    for tick in ticks:
        if tick % tick_spacing != 0:
            raise TickAlignmentError(tick=tick, tick_spacing=tick_spacing)
        word_pos, bit_pos = position(compress(tick, tick_spacing))
        words[word_pos] = words.get(word_pos, 0) | (1 << bit_pos)
    return words


def gen_ticks(
    initialized_ticks: Sequence[int],
    starting_tick: int,
    tick_spacing: int,
    less_than_or_equal: bool,
) -> Generator[tuple[int, bool], None, None]:
    """
    Yields the ticks a swap may stop at, in swap order: every initialized tick plus the tick at
    each 256-bit word boundary, paired with its initialization status. The ticks are yielded in
    descending order when `less_than_or_equal` is True, else ascending.

    `initialized_ticks` must be sorted in ascending order.
    """

    word_pos, _ = position(compress(starting_tick, tick_spacing))

    # The boundary ticks for each word are at the 0th and 255th bits.
    # On the way down (less_than_or_equal=True), start at the 0th bit.
    # On the way up (less_than_or_equal=False), start at the 255th bit.
    if less_than_or_equal:
        step_distance = -256 * tick_spacing
        first_boundary_tick = tick_spacing * 256 * word_pos
        split = bisect.bisect_right(initialized_ticks, starting_tick)
        ahead = reversed(initialized_ticks[:split])
    else:
        step_distance = 256 * tick_spacing
        first_boundary_tick = tick_spacing * (256 * word_pos + 255)
        if starting_tick >= first_boundary_tick:
            # Starting on the last tick of a word, so the first boundary is in the next word
            first_boundary_tick += 256 * tick_spacing
        split = bisect.bisect_right(initialized_ticks, starting_tick)
        ahead = iter(initialized_ticks[split:])

    boundary_ticks = count(start=first_boundary_tick, step=step_distance)

    def _is_before(a: int, b: int) -> bool:
        return a > b if less_than_or_equal else a < b

    next_initialized_tick = next(ahead, None)
    next_boundary_tick = next(boundary_ticks)

    while next_initialized_tick is not None:
        if _is_before(next_initialized_tick, next_boundary_tick):
            yield next_initialized_tick, True
            next_initialized_tick = next(ahead, None)
        elif _is_before(next_boundary_tick, next_initialized_tick):
            yield next_boundary_tick, False
            next_boundary_tick = next(boundary_ticks)
        else:
            # The initialized tick lies on a word boundary
            yield next_boundary_tick, True
            next_initialized_tick = next(ahead, None)
            next_boundary_tick = next(boundary_ticks)

    while True:
        yield next_boundary_tick, False
        next_boundary_tick = next(boundary_ticks)
