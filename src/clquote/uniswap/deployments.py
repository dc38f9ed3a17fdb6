import dataclasses

from eth_typing import ChecksumAddress

from clquote.checksum_cache import get_checksum_address
from clquote.exceptions import ClquoteValueError
from clquote.types.aliases import ChainId

UNISWAP_V3_POOL_INIT_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"


@dataclasses.dataclass(slots=True, frozen=True)
class UniswapFactoryDeployment:
    address: ChecksumAddress
    pool_init_hash: str


@dataclasses.dataclass(slots=True, frozen=True)
class UniswapV3ExchangeDeployment:
    name: str
    chain_id: ChainId
    factory: UniswapFactoryDeployment


def register_exchange(exchange: UniswapV3ExchangeDeployment) -> None:
    if exchange.chain_id in FACTORY_DEPLOYMENTS:
        raise ClquoteValueError(message="An exchange is already registered for this chain.")

    FACTORY_DEPLOYMENTS[exchange.chain_id] = exchange


def get_exchange(chain_id: ChainId) -> UniswapV3ExchangeDeployment:
    try:
        return FACTORY_DEPLOYMENTS[chain_id]
    except KeyError:
        raise ClquoteValueError(
            message=f"No Uniswap V3 deployment is known for chain {chain_id}."
        ) from None


EthereumMainnetUniswapV3 = UniswapV3ExchangeDeployment(
    name="Ethereum Mainnet Uniswap V3",
    chain_id=1,
    factory=UniswapFactoryDeployment(
        address=get_checksum_address("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
        pool_init_hash=UNISWAP_V3_POOL_INIT_HASH,
    ),
)

ArbitrumUniswapV3 = UniswapV3ExchangeDeployment(
    name="Arbitrum Uniswap V3",
    chain_id=42161,
    factory=UniswapFactoryDeployment(
        address=get_checksum_address("0x1F98431c8aD98523631AE4a59f267346ea31F984"),
        pool_init_hash=UNISWAP_V3_POOL_INIT_HASH,
    ),
)

FACTORY_DEPLOYMENTS: dict[ChainId, UniswapV3ExchangeDeployment] = {
    exchange.chain_id: exchange for exchange in (EthereumMainnetUniswapV3, ArbitrumUniswapV3)
}
