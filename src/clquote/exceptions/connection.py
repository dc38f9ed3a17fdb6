from clquote.exceptions.base import ClquoteError


class ClquoteConnectionError(ClquoteError):
    """
    Base exception for connection-related errors.
    """


class Web3ConnectionTimeout(ClquoteConnectionError):
    """
    Raised when a Web3 instance does not report a connection within the allowed time.
    """

    def __init__(self, timeout_seconds: int | None = None) -> None:
        self.timeout_seconds = timeout_seconds

        message = "Timed out waiting for Web3 connection"
        if timeout_seconds is not None:
            message += f" after {timeout_seconds} seconds"
        message += "."

        super().__init__(message=message)
