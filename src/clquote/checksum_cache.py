import functools

from cchecksum import to_checksum_address
from eth_typing import ChecksumAddress, HexStr


@functools.lru_cache(maxsize=4096)
def get_checksum_address(address: HexStr | bytes | str) -> ChecksumAddress:
    """
    Return the EIP-55 checksummed form of an address. Pool, token and multicall addresses are
    checksummed on every lookup, so results are memoized.
    """

    return to_checksum_address(address)
