from .checksum_cache import get_checksum_address
from .config import settings
from .connection import async_connection_manager, get_async_web3, set_async_web3
from .version import __version__

# isort: split

from .chain_reader import Call, ChainReader
from .erc20 import Token, TokenRegistry, default_token_registry
from .logging import logger
from .uniswap import (
    BackgroundRefresher,
    BitmapScanner,
    LiquidityPipeline,
    PoolDescriptor,
    PoolState,
    QuoteResult,
    Tick,
    TickCache,
    TickDataFetcher,
    TickSet,
    UniswapV3Quoter,
    build_pool_state,
    simulate_exact_input,
)

__all__ = (
    "BackgroundRefresher",
    "BitmapScanner",
    "Call",
    "ChainReader",
    "LiquidityPipeline",
    "PoolDescriptor",
    "PoolState",
    "QuoteResult",
    "Tick",
    "TickCache",
    "TickDataFetcher",
    "TickSet",
    "Token",
    "TokenRegistry",
    "UniswapV3Quoter",
    "__version__",
    "async_connection_manager",
    "build_pool_state",
    "default_token_registry",
    "get_async_web3",
    "get_checksum_address",
    "logger",
    "set_async_web3",
    "settings",
    "simulate_exact_input",
)
