__all__ = (
    "FEE_DENOMINATOR",
    "MAX_INT128",
    "MAX_INT256",
    "MAX_TICK",
    "MAX_UINT24",
    "MAX_UINT128",
    "MAX_UINT160",
    "MAX_UINT256",
    "MIN_INT128",
    "MIN_TICK",
    "MIN_UINT24",
    "MIN_UINT128",
    "MIN_UINT160",
    "MIN_UINT256",
    "MULTICALL3_ADDRESS",
)

import typing

from eth_typing import ChecksumAddress

from clquote.checksum_cache import get_checksum_address


def _max_uint(bits: int) -> int:
    return typing.cast("int", 2**bits - 1)


def _min_int(bits: int) -> int:
    return typing.cast("int", -(2 ** (bits - 1)))


def _max_int(bits: int) -> int:
    return typing.cast("int", (2 ** (bits - 1)) - 1)


MIN_INT128 = _min_int(128)
MAX_INT128 = _max_int(128)

MAX_INT256 = _max_int(256)

MIN_UINT24 = MIN_UINT128 = MIN_UINT160 = MIN_UINT256 = 0
MAX_UINT24 = _max_uint(24)
MAX_UINT128 = _max_uint(128)
MAX_UINT160 = _max_uint(160)
MAX_UINT256 = _max_uint(256)

# Pool fees are expressed in pips, hundredths of a basis point
FEE_DENOMINATOR = 1_000_000

# Multicall3 is deployed at the same address on every supported chain
# ref: https://www.multicall3.com/deployments
MULTICALL3_ADDRESS: ChecksumAddress = get_checksum_address(
    "0xcA11bde05977b3631167028862bE2a173976CA11"
)

# Tick bounds for 1.0001^tick pricing, derived from the uint160 sqrt price range
MIN_TICK = -887272
MAX_TICK = -MIN_TICK
