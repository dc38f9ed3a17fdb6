from clquote.exceptions.base import ClquoteError

"""
Exceptions defined here are raised by the token registry.
"""


class RegistryError(ClquoteError):
    """
    Exception raised inside registries.
    """


class UnknownToken(RegistryError):
    """
    Raised when a symbol or address does not resolve to a registered token.
    """

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(message=f"Token {token} is not registered.")


class TokenAlreadyRegistered(RegistryError):
    def __init__(self, token: str) -> None:
        super().__init__(message=f"Token {token} is already registered.")
