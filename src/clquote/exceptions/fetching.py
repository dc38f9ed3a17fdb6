"""
Data fetching exceptions for the clquote package.

Every failure of a chain read is translated into one of these at the `ChainReader` boundary, so
callers never have to handle web3, eth-abi or transport exceptions directly.
"""

from typing import Any

from clquote.exceptions.base import ClquoteError


class FetchingError(ClquoteError):
    """
    Base exception for data fetching errors.
    """


class ProviderError(FetchingError):
    """
    Raised when a chain read fails. A batched read that fails carries the index of the batch, and
    no partial result from the surrounding operation is returned.
    """

    def __init__(self, message: str, batch: int | None = None) -> None:
        self.batch = batch
        if batch is not None:
            message = f"Batch {batch} failed: {message}"
        super().__init__(message=message)


class PipelineRetriesExhausted(ProviderError):
    """
    Raised when a liquidity pipeline run failed on every allowed attempt.
    """

    def __init__(self, pool: str, attempts: int) -> None:
        self.pool = pool
        self.attempts = attempts
        super().__init__(message=f"Liquidity fetch for pool {pool} failed after {attempts} tries.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool, self.attempts)
