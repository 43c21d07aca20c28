"""Exceptions raised by the catalog clients and the cache layer."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """A catalog provider could not produce a usable answer."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderTransportError(ProviderError):
    """Network failure, non-2xx status or an upstream error document."""


class ProviderPayloadError(ProviderError):
    """The provider answered with JSON we could not decode."""


class ProviderEmptyResult(ProviderError):
    """Well-formed response without any matches."""


class CacheError(RuntimeError):
    """The cache medium rejected a read or write."""


class CacheQuotaExceeded(CacheError):
    """The cache medium has no room for another entry."""
