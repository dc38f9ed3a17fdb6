from collections.abc import Iterable
from decimal import Decimal
from fractions import Fraction

import eth_abi.abi
from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from hexbytes import HexBytes

from clquote.checksum_cache import get_checksum_address
from clquote.exceptions import ClquoteValueError
from clquote.exceptions.liquidity_pool import UnknownFeeTier

FEE_TO_TICK_SPACING: dict[int, int] = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}


def tick_spacing_for_fee(fee: int) -> int:
    try:
        return FEE_TO_TICK_SPACING[fee]
    except KeyError:
        raise UnknownFeeTier(fee) from None


def sort_token_addresses(token_addresses: Iterable[str]) -> tuple[ChecksumAddress, ChecksumAddress]:
    """
    Return the pair of token addresses ordered as (token0, token1).
    """

    addresses = sorted(
        {get_checksum_address(address) for address in token_addresses},
        key=str.lower,
    )
    if len(addresses) != 2:  # noqa: PLR2004
        raise ClquoteValueError(message="A pool requires two distinct token addresses.")
    return addresses[0], addresses[1]


def generate_v3_pool_address(
    token_addresses: Iterable[str],
    fee: int,
    factory_or_deployer_address: str,
    init_hash: str,
) -> ChecksumAddress:
    """
    Generate the deterministic pool address from the token addresses and fee.

    Adapted from https://github.com/Uniswap/v3-periphery/blob/main/contracts/libraries/PoolAddress.sol
    """

    token0, token1 = sort_token_addresses(token_addresses)

    salt = keccak(
        eth_abi.abi.encode(
            types=("address", "address", "uint24"),
            args=(token0, token1, fee),
        )
    )

    # CREATE2: the address is the last 20 bytes of keccak(0xff ++ deployer ++ salt ++ init hash)
    return get_checksum_address(
        keccak(
            HexBytes(0xFF) + HexBytes(factory_or_deployer_address) + salt + HexBytes(init_hash)
        )[-20:]
    )


def exchange_rate_from_sqrt_price_x96(sqrt_price_x96: int) -> Fraction:
    """
    The price of token0 in units of token1, in raw token units.
    """

    # ref: https://blog.uniswap.org/uniswap-v3-math-primer
    return Fraction(sqrt_price_x96**2, 2**192)


def price_at_tick(tick: int) -> Decimal:
    """
    The raw price 1.0001^tick of token0 in units of token1.
    """

    return Decimal("1.0001") ** tick
