import dataclasses

from eth_typing import ChecksumAddress

from clquote.checksum_cache import get_checksum_address
from clquote.types.aliases import ChainId


@dataclasses.dataclass(slots=True, frozen=True)
class Token:
    chain_id: ChainId
    address: ChecksumAddress
    decimals: int
    symbol: str

    def __str__(self) -> str:
        return self.symbol

    def __lt__(self, other: "Token") -> bool:
        # Pools order their tokens by address value
        return int(self.address, 16) < int(other.address, 16)


def _arbitrum_token(address: str, decimals: int, symbol: str) -> Token:
    return Token(
        chain_id=42161,
        address=get_checksum_address(address),
        decimals=decimals,
        symbol=symbol,
    )


ARBITRUM_ONE_TOKENS = (
    _arbitrum_token("0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6, "USDC"),
    _arbitrum_token("0xff970a61a04b1ca14834a43f5de4533ebddb5cc8", 6, "USDC.e"),
    _arbitrum_token("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6, "USDT"),
    _arbitrum_token("0x912CE59144191C1204E64559FE8253a0e49E6548", 18, "ARB"),
    _arbitrum_token("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18, "WETH"),
)

DEFAULT_TOKENS: dict[ChainId, tuple[Token, ...]] = {
    42161: ARBITRUM_ONE_TOKENS,
}
