"""
mcpchat providers module.

This module provides chat-completion providers that support tool calling.
"""

from mcpchat.providers.base import Provider, ProviderError, ProviderFactory

__all__ = ["Provider", "ProviderError", "ProviderFactory"]
