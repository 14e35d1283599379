"""Configuration for credstore.

Example:
    >>> from credstore.config import get_settings
    >>> get_settings().backend
    'auto'
"""

from credstore.config.settings import BackendName, CredStoreSettings, get_settings

__all__ = ["BackendName", "CredStoreSettings", "get_settings"]
