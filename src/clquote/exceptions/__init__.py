from clquote.exceptions.base import ClquoteError, ClquoteTypeError, ClquoteValueError
from clquote.exceptions.connection import ClquoteConnectionError, Web3ConnectionTimeout
from clquote.exceptions.evm import EVMRevertError
from clquote.exceptions.fetching import FetchingError, PipelineRetriesExhausted, ProviderError

from . import connection, evm, fetching, liquidity_pool, quote, registry

__all__ = (
    "ClquoteConnectionError",
    "ClquoteError",
    "ClquoteTypeError",
    "ClquoteValueError",
    "EVMRevertError",
    "FetchingError",
    "PipelineRetriesExhausted",
    "ProviderError",
    "Web3ConnectionTimeout",
    "connection",
    "evm",
    "fetching",
    "liquidity_pool",
    "quote",
    "registry",
)
