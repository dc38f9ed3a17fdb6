from collections.abc import Iterable, Iterator

from eth_typing import ChecksumAddress

from clquote.chain_reader import Call, ChainReader
from clquote.checksum_cache import get_checksum_address
from clquote.exceptions import ClquoteValueError, ProviderError
from clquote.exceptions.registry import TokenAlreadyRegistered, UnknownToken
from clquote.logging import logger
from clquote.types.aliases import ChainId

from .token import DEFAULT_TOKENS, Token


def _looks_like_address(value: str) -> bool:
    return value.startswith(("0x", "0X")) and len(value) == 42  # noqa: PLR2004


class TokenRegistry:
    """
    Maps token addresses and symbols to `Token` metadata for a single chain.

    Symbols are matched case-insensitively. If two tokens share a symbol, the symbol resolves to the
    first one registered.
    """

    def __init__(self, chain_id: ChainId, tokens: Iterable[Token] = ()) -> None:
        self.chain_id = chain_id
        self._all_tokens: dict[ChecksumAddress, Token] = {}
        self._symbols: dict[str, ChecksumAddress] = {}
        for token in tokens:
            self.add(token)

    def __contains__(self, address: str) -> bool:
        return get_checksum_address(address) in self._all_tokens

    def __iter__(self) -> Iterator[Token]:
        return iter(self._all_tokens.values())

    def __len__(self) -> int:
        return len(self._all_tokens)

    def add(self, token: Token) -> None:
        if token.chain_id != self.chain_id:
            raise ClquoteValueError(
                message=f"Token {token} is on chain {token.chain_id}, expected {self.chain_id}."
            )
        if token.address in self._all_tokens:
            raise TokenAlreadyRegistered(token.address)

        self._all_tokens[token.address] = token
        self._symbols.setdefault(token.symbol.upper(), token.address)

    def get(self, address: str) -> Token | None:
        return self._all_tokens.get(get_checksum_address(address))

    def get_by_symbol(self, symbol: str) -> Token | None:
        address = self._symbols.get(symbol.upper())
        return None if address is None else self._all_tokens[address]

    def remove(self, address: str) -> None:
        token = self._all_tokens.pop(get_checksum_address(address), None)
        if token is None:
            return
        if self._symbols.get(token.symbol.upper()) == token.address:
            del self._symbols[token.symbol.upper()]
            # Promote another token with the same symbol, if any
            for other in self._all_tokens.values():
                if other.symbol.upper() == token.symbol.upper():
                    self._symbols[token.symbol.upper()] = other.address
                    break

    def resolve(self, token: Token | str) -> Token:
        """
        Resolve a token given as a `Token`, an address, or a symbol.
        """

        if isinstance(token, Token):
            return token

        resolved = self.get(token) if _looks_like_address(token) else self.get_by_symbol(token)
        if resolved is None:
            raise UnknownToken(token)
        return resolved

    async def fetch_token(self, reader: ChainReader, address: str) -> Token:
        """
        Return the registered token at `address`, reading its symbol and decimals from the chain
        and registering it if it is not yet known.
        """

        address = get_checksum_address(address)
        if (token := self._all_tokens.get(address)) is not None:
            return token

        try:
            (symbol,), (decimals,) = await reader.aggregate(
                [
                    Call(address, "symbol()", return_types=("string",)),
                    Call(address, "decimals()", return_types=("uint8",)),
                ]
            )
        except ProviderError as exc:
            raise UnknownToken(address) from exc

        token = Token(chain_id=self.chain_id, address=address, decimals=decimals, symbol=symbol)
        self.add(token)
        logger.info(f"Registered token {symbol} @ {address}")
        return token


def default_token_registry(chain_id: ChainId) -> TokenRegistry:
    """
    Build a registry holding the well-known tokens for the chain.
    """

    return TokenRegistry(chain_id=chain_id, tokens=DEFAULT_TOKENS.get(chain_id, ()))
