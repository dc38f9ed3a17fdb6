from decimal import Decimal
from fractions import Fraction

import pytest

from clquote.exceptions import ClquoteValueError
from clquote.exceptions.liquidity_pool import UnknownFeeTier
from clquote.uniswap.deployments import (
    ArbitrumUniswapV3,
    EthereumMainnetUniswapV3,
    UniswapFactoryDeployment,
    UniswapV3ExchangeDeployment,
    get_exchange,
    register_exchange,
)
from clquote.uniswap.v3_functions import (
    exchange_rate_from_sqrt_price_x96,
    generate_v3_pool_address,
    price_at_tick,
    sort_token_addresses,
    tick_spacing_for_fee,
)

MAINNET_WBTC_ADDRESS = "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599"
MAINNET_WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
MAINNET_USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
MAINNET_UNISWAP_V3_WBTC_WETH_LP_ADDRESS = "0xCBCdF9626bC03E24f779434178A73a0B4bad62eD"
MAINNET_UNISWAP_V3_WBTC_WETH_LP_FEE = 3000
MAINNET_UNISWAP_V3_USDC_WETH_LP_ADDRESS = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
MAINNET_UNISWAP_V3_USDC_WETH_LP_FEE = 500


def test_v3_address_generator() -> None:
    # Should generate address for Uniswap V3 WETH/WBTC pool
    # factory ref: https://etherscan.io/address/0x1F98431c8aD98523631AE4a59f267346ea31F984
    # pool ref: https://etherscan.io/address/0xcbcdf9626bc03e24f779434178a73a0b4bad62ed
    wbtc_weth_address = generate_v3_pool_address(
        token_addresses=[MAINNET_WBTC_ADDRESS, MAINNET_WETH_ADDRESS],
        fee=MAINNET_UNISWAP_V3_WBTC_WETH_LP_FEE,
        factory_or_deployer_address="0x1F98431c8aD98523631AE4a59f267346ea31F984",
        init_hash="0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54",
    )
    assert wbtc_weth_address == MAINNET_UNISWAP_V3_WBTC_WETH_LP_ADDRESS

    # address generator returns a checksum address, so check against the lowered string
    with pytest.raises(AssertionError):
        assert wbtc_weth_address == MAINNET_UNISWAP_V3_WBTC_WETH_LP_ADDRESS.lower()

    # token order does not matter
    assert (
        generate_v3_pool_address(
            token_addresses=[MAINNET_WETH_ADDRESS.lower(), MAINNET_USDC_ADDRESS],
            fee=MAINNET_UNISWAP_V3_USDC_WETH_LP_FEE,
            factory_or_deployer_address=EthereumMainnetUniswapV3.factory.address,
            init_hash=EthereumMainnetUniswapV3.factory.pool_init_hash,
        )
        == MAINNET_UNISWAP_V3_USDC_WETH_LP_ADDRESS
    )


def test_sort_token_addresses() -> None:
    assert sort_token_addresses([MAINNET_WETH_ADDRESS, MAINNET_USDC_ADDRESS]) == (
        MAINNET_USDC_ADDRESS,
        MAINNET_WETH_ADDRESS,
    )

    with pytest.raises(ClquoteValueError):
        sort_token_addresses([MAINNET_WETH_ADDRESS, MAINNET_WETH_ADDRESS.lower()])


@pytest.mark.parametrize(
    ("fee", "tick_spacing"),
    [
        (100, 1),
        (500, 10),
        (3000, 60),
        (10000, 200),
    ],
)
def test_tick_spacing_for_fee(fee: int, tick_spacing: int) -> None:
    assert tick_spacing_for_fee(fee) == tick_spacing


def test_unknown_fee_tier() -> None:
    with pytest.raises(UnknownFeeTier) as exc_info:
        tick_spacing_for_fee(2500)
    assert exc_info.value.fee == 2500


def test_v3_exchange_rates_from_sqrt_price_x96() -> None:
    assert exchange_rate_from_sqrt_price_x96(2**96) == 1
    assert exchange_rate_from_sqrt_price_x96(2 * 2**96) == 4
    assert exchange_rate_from_sqrt_price_x96(2**95) == Fraction(1, 4)


def test_price_at_tick() -> None:
    assert price_at_tick(0) == 1
    assert price_at_tick(1) == Decimal("1.0001")
    assert price_at_tick(-1) == 1 / Decimal("1.0001")


def test_exchange_deployments() -> None:
    assert get_exchange(42161) is ArbitrumUniswapV3
    assert get_exchange(1) is EthereumMainnetUniswapV3

    with pytest.raises(ClquoteValueError):
        get_exchange(69)

    with pytest.raises(ClquoteValueError):
        register_exchange(
            UniswapV3ExchangeDeployment(
                name="Duplicate Arbitrum Uniswap V3",
                chain_id=42161,
                factory=UniswapFactoryDeployment(
                    address=ArbitrumUniswapV3.factory.address,
                    pool_init_hash=ArbitrumUniswapV3.factory.pool_init_hash,
                ),
            )
        )
