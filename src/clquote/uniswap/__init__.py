from .v3_bitmap_scanner import BitmapScanner
from .v3_pipeline import LiquidityPipeline
from .v3_pool_model import build_pool_state, simulate_exact_input, swap_is_viable
from .v3_quoter import UniswapV3Quoter
from .v3_refresher import BackgroundRefresher
from .v3_tick_cache import TickCache
from .v3_tick_fetcher import TickDataFetcher
from .v3_types import CacheEntry, PoolDescriptor, PoolState, QuoteResult, Tick, TickSet

__all__ = (
    "BackgroundRefresher",
    "BitmapScanner",
    "CacheEntry",
    "LiquidityPipeline",
    "PoolDescriptor",
    "PoolState",
    "QuoteResult",
    "Tick",
    "TickCache",
    "TickDataFetcher",
    "TickSet",
    "UniswapV3Quoter",
    "build_pool_state",
    "simulate_exact_input",
    "swap_is_viable",
)
