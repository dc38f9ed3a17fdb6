from typing import Any

from clquote.exceptions.base import ClquoteError


class LiquidityPoolError(ClquoteError):
    """
    Exception raised inside liquidity pool helpers.
    """


# 2nd level exceptions for pool construction and simulation
class InvalidPoolState(LiquidityPoolError):
    """
    Raised when chain data cannot be assembled into a consistent pool state.
    """


class TickAlignmentError(InvalidPoolState):
    """
    Raised when a tick index is not a multiple of the pool's tick spacing.
    """

    def __init__(self, tick: int, tick_spacing: int) -> None:
        self.tick = tick
        self.tick_spacing = tick_spacing
        super().__init__(message=f"Tick {tick} is not aligned to tick spacing {tick_spacing}.")


class LiquidityInvariantViolation(InvalidPoolState):
    """
    Raised when the reconstructed liquidity is inconsistent with the pool's reported liquidity or
    price, or when in-range liquidity would become negative during a swap.
    """


class EmptyLiquidity(LiquidityPoolError):
    """
    Raised when a pool has no usable liquidity. The pool offers no route for a swap.
    """

    def __init__(self, pool: str) -> None:
        self.pool = pool
        super().__init__(message=f"Pool {pool} has no liquidity.")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool,)


class IncompleteSwap(LiquidityPoolError):
    """
    Raised if a swap calculation would not consume the input before the known liquidity runs out.
    """

    def __init__(self, amount_in: int, amount_out: int) -> None:
        self.amount_in = amount_in
        self.amount_out = amount_out
        super().__init__(message="Insufficient liquidity to swap for the requested amount.")

    def __reduce__(self) -> tuple[Any, ...]:
        # Pickling will raise an exception if a reduction method is not defined
        return self.__class__, (self.amount_in, self.amount_out)


class InvalidSwapInputAmount(LiquidityPoolError):
    def __init__(self) -> None:
        """
        Raised if a swap input amount is invalid.
        """

        super().__init__(message="The swap input is invalid.")


class UnknownFeeTier(LiquidityPoolError):
    """
    Raised when a fee has no known tick spacing.
    """

    def __init__(self, fee: int) -> None:
        self.fee = fee
        super().__init__(message=f"Fee {fee} has no known tick spacing.")
