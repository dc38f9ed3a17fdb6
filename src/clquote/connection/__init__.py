from web3 import AsyncBaseProvider, AsyncWeb3

from clquote.exceptions import ClquoteValueError

from .async_connection_manager import AsyncConnectionManager


def get_async_web3() -> AsyncWeb3[AsyncBaseProvider]:
    if async_connection_manager._default_chain_id is None:
        raise ClquoteValueError(message="A default Web3 instance has not been registered.")
    return async_connection_manager.get_web3(chain_id=async_connection_manager.default_chain_id)


async def set_async_web3(
    w3: AsyncWeb3[AsyncBaseProvider],
    *,
    optimize: bool = True,
) -> None:
    chain_id = await async_connection_manager.register_web3(w3, optimize=optimize)
    async_connection_manager.set_default_chain(chain_id)


async_connection_manager = AsyncConnectionManager()


__all__ = (
    "AsyncConnectionManager",
    "async_connection_manager",
    "get_async_web3",
    "set_async_web3",
)
