from clquote.constants import MAX_UINT256, MIN_UINT256
from clquote.exceptions import EVMRevertError


def _check_uint256(name: str, value: int) -> None:
    if not (MIN_UINT256 <= value <= MAX_UINT256):
        raise EVMRevertError(error=f"Invalid value for {name}.")


def mulmod(x: int, y: int, k: int) -> int:
    if k == 0:
        raise EVMRevertError(error="division by zero")
    return (x * y) % k


def div_rounding_up(x: int, y: int) -> int:
    """
    Floored division of two uint256 values, rounded up when a remainder exists. Division by zero
    is not checked.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/UnsafeMath.sol
    """

    return x // y + (x % y > 0)


def muldiv(
    a: int,
    b: int,
    denominator: int,
) -> int:
    """
    Calculate floor(a * b / denominator).

    The contract version avoids overflow of the 512-bit intermediate product. Python integers are
    unbounded, so only the uint256 domain of the inputs and the result are checked here.

    ref: https://github.com/Uniswap/v3-core/blob/main/contracts/libraries/FullMath.sol
    """

    _check_uint256("a", a)
    _check_uint256("b", b)
    _check_uint256("denominator", denominator)

    if denominator == 0:
        raise EVMRevertError(error="DIVISION BY ZERO")

    result = (a * b) // denominator
    if result > MAX_UINT256:
        raise EVMRevertError(error="Invalid result, does not fit in uint256")

    return result


def muldiv_rounding_up(a: int, b: int, denominator: int) -> int:
    result = muldiv(a, b, denominator)
    if mulmod(a, b, denominator) == 0:
        return result
    if result == MAX_UINT256:
        raise EVMRevertError(error="Rounded result does not fit in uint256")
    return result + 1
