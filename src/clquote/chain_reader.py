import asyncio
import dataclasses
from collections.abc import Sequence
from typing import Any

import aiohttp
import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from hexbytes import HexBytes
from web3 import AsyncBaseProvider, AsyncWeb3
from web3.exceptions import Web3Exception
from web3.types import BlockIdentifier, TxParams

from clquote.checksum_cache import get_checksum_address
from clquote.config import settings
from clquote.connection import get_async_web3
from clquote.exceptions import ClquoteValueError, ProviderError
from clquote.logging import logger
from clquote.types.aliases import BlockNumber

AGGREGATE3_PROTOTYPE = "aggregate3((address,bool,bytes)[])"
AGGREGATE3_ARGUMENT_TYPES = ("(address,bool,bytes)[]",)
AGGREGATE3_RETURN_TYPES = ("(bool,bytes)[]",)

_TRANSPORT_EXCEPTIONS = (
    Web3Exception,
    DecodingError,
    aiohttp.ClientError,
    TimeoutError,
    OSError,
)


def function_selector(function_prototype: str) -> bytes:
    return keccak(text=function_prototype)[:4]


def argument_types(function_prototype: str) -> list[str]:
    """
    Split the argument types out of a function prototype, e.g. `ticks(int24)` -> `["int24"]`.

    Tuple arguments are not supported.
    """

    arguments = function_prototype[
        function_prototype.find("(") + 1 : function_prototype.rfind(")")
    ]
    return arguments.split(",") if arguments else []


@dataclasses.dataclass(slots=True, frozen=True)
class Call:
    """
    A read-only contract call, described by its function prototype, the ordered arguments, and the
    ABI types of the returned values.
    """

    target: ChecksumAddress
    function_prototype: str
    arguments: tuple[Any, ...] = ()
    return_types: tuple[str, ...] = ()

    @property
    def calldata(self) -> bytes:
        return function_selector(self.function_prototype) + eth_abi.abi.encode(
            argument_types(self.function_prototype), self.arguments
        )


class ChainReader:
    """
    Executes read-only calls against a chain, aggregating many calls into a single round trip
    through the Multicall3 contract.

    Every failure of the provider, the transport, or the decoding of a result is raised as a
    `ProviderError`.
    """

    def __init__(
        self,
        w3: AsyncWeb3[AsyncBaseProvider] | None = None,
        *,
        multicall_address: str | None = None,
        batch_size: int | None = None,
        max_concurrent_batches: int | None = None,
    ) -> None:
        self._w3 = w3
        self.multicall_address = get_checksum_address(
            multicall_address if multicall_address is not None else settings.multicall_address
        )
        self.batch_size = batch_size if batch_size is not None else settings.batch_size
        self.max_concurrent_batches = (
            max_concurrent_batches
            if max_concurrent_batches is not None
            else settings.max_concurrent_batches
        )
        if self.batch_size <= 0:
            raise ClquoteValueError(message="Batch size must be positive.")
        if self.max_concurrent_batches <= 0:
            raise ClquoteValueError(message="Concurrent batch limit must be positive.")

    @property
    def w3(self) -> AsyncWeb3[AsyncBaseProvider]:
        return self._w3 if self._w3 is not None else get_async_web3()

    async def block_number(self) -> BlockNumber:
        try:
            return await self.w3.eth.block_number
        except _TRANSPORT_EXCEPTIONS as exc:
            raise ProviderError(message=f"Could not fetch the block number: {exc}") from exc

    async def get_code(
        self,
        address: ChecksumAddress,
        block_identifier: BlockIdentifier | None = None,
    ) -> bytes:
        try:
            return bytes(await self.w3.eth.get_code(address, block_identifier=block_identifier))
        except _TRANSPORT_EXCEPTIONS as exc:
            raise ProviderError(message=f"Could not fetch the code at {address}: {exc}") from exc

    async def call(
        self,
        call: Call,
        block_identifier: BlockIdentifier | None = None,
    ) -> tuple[Any, ...]:
        (result,) = await self.aggregate([call], block_identifier=block_identifier)
        return result

    async def aggregate(
        self,
        calls: Sequence[Call],
        block_identifier: BlockIdentifier | None = None,
    ) -> list[tuple[Any, ...]]:
        """
        Execute the calls in a single `aggregate3` round trip and return the decoded results in
        call order. The calls are not allowed to fail individually, so one reverting call fails
        the whole aggregate.
        """

        if not calls:
            return []

        payload = function_selector(AGGREGATE3_PROTOTYPE) + eth_abi.abi.encode(
            types=AGGREGATE3_ARGUMENT_TYPES,
            args=[[(call.target, False, call.calldata) for call in calls]],
        )

        try:
            raw_result = await self.w3.eth.call(
                TxParams(to=self.multicall_address, data=HexBytes(payload)),
                block_identifier=block_identifier,
            )
            (call_results,) = eth_abi.abi.decode(AGGREGATE3_RETURN_TYPES, raw_result)
            decoded_results = []
            for call, (success, return_data) in zip(calls, call_results, strict=True):
                if not success:
                    raise ProviderError(
                        message=f"Call to {call.function_prototype} at {call.target} reverted"
                    )
                decoded_results.append(tuple(eth_abi.abi.decode(call.return_types, return_data)))
        except _TRANSPORT_EXCEPTIONS as exc:
            raise ProviderError(message=f"Aggregate call failed: {exc}") from exc
        except ValueError as exc:
            # Raised by zip when the result count does not match the call count
            raise ProviderError(message=f"Malformed aggregate result: {exc}") from exc

        return decoded_results

    async def aggregate_batched(
        self,
        calls: Sequence[Call],
        *,
        block_identifier: BlockIdentifier | None = None,
        batch_size: int | None = None,
        description: str = "calls",
    ) -> list[tuple[Any, ...]]:
        """
        Split the calls into batches of `batch_size`, execute one aggregate round trip per batch,
        and return every decoded result in call order.

        Up to `max_concurrent_batches` batches are in flight at once. The first failing batch
        aborts the remaining ones and is raised as a `ProviderError` carrying its batch index.
        """

        if batch_size is None:
            batch_size = self.batch_size
        if batch_size <= 0:
            raise ClquoteValueError(message="Batch size must be positive.")

        batches = [calls[i : i + batch_size] for i in range(0, len(calls), batch_size)]
        logger.debug(f"Reading {len(calls)} {description} in {len(batches)} batches")

        if self.max_concurrent_batches == 1 or len(batches) <= 1:
            results: list[tuple[Any, ...]] = []
            for batch_index, batch in enumerate(batches):
                results.extend(
                    await self._aggregate_batch(batch_index, batch, block_identifier, description)
                )
            return results

        semaphore = asyncio.Semaphore(self.max_concurrent_batches)

        async def _limited(batch_index: int, batch: Sequence[Call]) -> list[tuple[Any, ...]]:
            async with semaphore:
                return await self._aggregate_batch(
                    batch_index, batch, block_identifier, description
                )

        try:
            async with asyncio.TaskGroup() as task_group:
                tasks = [
                    task_group.create_task(_limited(batch_index, batch))
                    for batch_index, batch in enumerate(batches)
                ]
        except ExceptionGroup as exc_group:
            # The task group cancels the sibling batches after the first failure
            raise exc_group.exceptions[0] from None

        return [result for task in tasks for result in task.result()]

    async def _aggregate_batch(
        self,
        batch_index: int,
        batch: Sequence[Call],
        block_identifier: BlockIdentifier | None,
        description: str,
    ) -> list[tuple[Any, ...]]:
        try:
            results = await self.aggregate(batch, block_identifier=block_identifier)
        except ProviderError as exc:
            raise ProviderError(message=exc.message or str(exc), batch=batch_index) from exc
        logger.debug(f"Batch {batch_index}: read {len(results)} {description}")
        return results
