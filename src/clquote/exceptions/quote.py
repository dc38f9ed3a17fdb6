from clquote.exceptions.base import ClquoteError


class QuoteError(ClquoteError):
    """
    Exception raised by the quoter.
    """


class NoRouteFound(QuoteError):
    """
    Raised when no fee tier produced a usable quote for the requested pair.
    """

    def __init__(self, token_in: str, token_out: str) -> None:
        self.token_in = token_in
        self.token_out = token_out
        super().__init__(message=f"No route found for {token_in} -> {token_out}.")
