from .registry import TokenRegistry, default_token_registry
from .token import Token

__all__ = (
    "Token",
    "TokenRegistry",
    "default_token_registry",
)
