from clquote.exceptions.base import ClquoteError


class EVMRevertError(ClquoteError):
    """
    Raised when a simulated EVM contract operation would revert.
    """

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(message=f"EVM Revert: {error}")
