"""Cross-platform storage of a single secret per (service, account) pair.

The secret is kept in the credential store the operating system provides:

- Linux/BSD: Secret Service over D-Bus (GNOME Keyring, KWallet)
- macOS: Keychain, through the ``security`` tool
- Windows: Credential Manager

Example:
    >>> import credstore
    >>> _ = credstore.install_mock_backend()
    >>> credstore.set_password("my-app", "anon", "secret")
    >>> credstore.get_password("my-app", "anon")
    'secret'
    >>> credstore.delete_password("my-app", "anon")
"""

from .backend import SecretBackend
from .credman_backend import CredManBackend, combined_target
from .exceptions import (
    AccessDeniedError,
    BackendFailureError,
    CollectionNotFoundError,
    CredStoreError,
    SecretNotFoundError,
    SecretTooLargeError,
    UnsupportedError,
)
from .facade import (
    delete_all,
    delete_password,
    get_backend,
    get_password,
    install_backend,
    install_mock_backend,
    set_password,
)
from .fallback_backend import UnsupportedPlatformBackend
from .keychain_backend import KeychainBackend
from .mock_backend import MockBackend
from .secret_service_backend import SecretServiceBackend

__all__ = [
    # Operations
    "set_password",
    "get_password",
    "delete_password",
    "delete_all",
    "get_backend",
    "install_backend",
    "install_mock_backend",
    # Backends
    "SecretBackend",
    "SecretServiceBackend",
    "KeychainBackend",
    "CredManBackend",
    "MockBackend",
    "UnsupportedPlatformBackend",
    "combined_target",
    # Exceptions
    "CredStoreError",
    "SecretNotFoundError",
    "AccessDeniedError",
    "UnsupportedError",
    "BackendFailureError",
    "CollectionNotFoundError",
    "SecretTooLargeError",
]
