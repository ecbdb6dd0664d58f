"""Delegated-auth credentials for social data providers."""

from nocharts.auth.token_store import (
    BearerToken,
    FileTokenStorage,
    MemoryTokenStorage,
    TokenStorage,
    TokenStore,
)

__all__ = [
    "BearerToken",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "TokenStorage",
    "TokenStore",
]
