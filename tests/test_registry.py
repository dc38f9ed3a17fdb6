import pytest

from clquote.checksum_cache import get_checksum_address
from clquote.erc20 import Token, TokenRegistry, default_token_registry
from clquote.exceptions import ClquoteValueError
from clquote.exceptions.registry import TokenAlreadyRegistered, UnknownToken
from tests.conftest import USDC, WETH, FakeChainReader

BRIDGED_USDC = Token(
    chain_id=42161,
    address=get_checksum_address("0xff970a61a04b1ca14834a43f5de4533ebddb5cc8"),
    decimals=6,
    symbol="USDC",
)
GMX_ADDRESS = "0xfc5a1a6eb076a2c7ad06ed22c90d7e710e35ad0a"


@pytest.fixture
def registry() -> TokenRegistry:
    return TokenRegistry(chain_id=42161, tokens=[WETH, USDC])


def test_default_registry():
    registry = default_token_registry(42161)
    assert len(registry) == 5
    assert registry.resolve("WETH") == WETH

    assert len(default_token_registry(1)) == 0


def test_resolve(registry: TokenRegistry):
    assert registry.resolve(WETH) is WETH
    assert registry.resolve("weth") == WETH
    assert registry.resolve("Usdc") == USDC
    assert registry.resolve(WETH.address.lower()) == WETH
    assert registry.resolve(USDC.address) == USDC
    assert WETH.address.lower() in registry
    assert list(registry) == [WETH, USDC]


@pytest.mark.parametrize(
    "token",
    [
        "GMX",
        GMX_ADDRESS,
    ],
)
def test_resolve_unknown_token(registry: TokenRegistry, token: str):
    with pytest.raises(UnknownToken) as exc_info:
        registry.resolve(token)
    assert exc_info.value.token == token


def test_duplicate_token(registry: TokenRegistry):
    with pytest.raises(TokenAlreadyRegistered):
        registry.add(WETH)


def test_token_from_another_chain(registry: TokenRegistry):
    with pytest.raises(ClquoteValueError):
        registry.add(
            Token(
                chain_id=1,
                address=get_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"),
                decimals=18,
                symbol="WETH",
            )
        )


def test_shared_symbol(registry: TokenRegistry):
    registry.add(BRIDGED_USDC)

    # The first registered token keeps the symbol
    assert registry.resolve("USDC") == USDC
    assert registry.resolve(BRIDGED_USDC.address) == BRIDGED_USDC

    registry.remove(USDC.address)
    assert registry.get(USDC.address) is None
    assert registry.resolve("USDC") == BRIDGED_USDC

    registry.remove(BRIDGED_USDC.address)
    assert registry.get_by_symbol("USDC") is None

    # Removing an unknown token is not an error
    registry.remove(BRIDGED_USDC.address)


async def test_fetch_token(registry: TokenRegistry):
    reader = FakeChainReader()
    reader.add_token(GMX_ADDRESS, "GMX", 18)

    token = await registry.fetch_token(reader, GMX_ADDRESS)

    assert token.symbol == "GMX"
    assert token.decimals == 18
    assert token.chain_id == 42161
    assert registry.resolve("gmx") is token
    assert reader.round_sizes == [2]

    # Registered tokens are not read again
    assert await registry.fetch_token(reader, GMX_ADDRESS) is token
    assert await registry.fetch_token(reader, WETH.address) is WETH
    assert reader.round_sizes == [2]


async def test_fetch_token_failure(registry: TokenRegistry):
    reader = FakeChainReader()

    with pytest.raises(UnknownToken):
        await registry.fetch_token(reader, GMX_ADDRESS)
    assert GMX_ADDRESS not in registry
