"""Source provider adapters.

This module provides:
- SourceProvider: the capability contract the exporter depends on
- ListOptions: page selection for listing calls
- GitHubProvider: githubkit-backed adapter
- Provider exceptions, including OpNotSupportedError
"""

from .base import DEFAULT_PAGE_SIZE, PULL_REQUEST_REF_PREFIX, ListOptions, SourceProvider
from .exceptions import (
    OpNotSupportedError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderNotFoundError,
    ProviderRateLimitError,
)
from .github import GitHubProvider, next_page_from_link

__all__ = [
    # Contract
    "DEFAULT_PAGE_SIZE",
    "PULL_REQUEST_REF_PREFIX",
    "ListOptions",
    "SourceProvider",
    # Adapters
    "GitHubProvider",
    "next_page_from_link",
    # Exceptions
    "OpNotSupportedError",
    "ProviderAuthenticationError",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderRateLimitError",
]
