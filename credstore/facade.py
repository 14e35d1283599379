"""Process-wide backend binding and the module-level credential functions.

Exactly one backend services every call. It is chosen on first use from the
``CREDSTORE_BACKEND`` setting, or from the operating system when the setting
is ``auto``:

- Linux and the BSDs: ``SecretServiceBackend``
- macOS: ``KeychainBackend``
- Windows: ``CredManBackend``
- anything else: ``UnsupportedPlatformBackend``

``install_mock_backend`` and ``install_backend`` replace the binding for the
rest of the process. Replacing it while other threads are inside
``set_password``/``get_password``/``delete_password`` is a race: install the
backend before concurrent use begins.
"""

import sys
import threading

import structlog

from credstore.config import BackendName, get_settings

from .backend import SecretBackend
from .credman_backend import CredManBackend
from .fallback_backend import UnsupportedPlatformBackend
from .keychain_backend import KeychainBackend
from .mock_backend import MockBackend
from .secret_service_backend import SecretServiceBackend

log = structlog.get_logger(__name__)

SECRET_SERVICE_PLATFORMS = ("linux", "freebsd", "openbsd", "netbsd", "dragonfly")
WINDOWS_PLATFORMS = ("win32", "cygwin")

_backend: SecretBackend | None = None
_backend_lock = threading.Lock()


def platform_backend_name(platform: str | None = None) -> BackendName | None:
    """Return the backend name native to a ``sys.platform`` value, if any."""
    platform = platform or sys.platform
    if platform.startswith(SECRET_SERVICE_PLATFORMS):
        return "secret-service"
    if platform == "darwin":
        return "keychain"
    if platform in WINDOWS_PLATFORMS:
        return "credman"
    return None


def create_backend(name: BackendName = "auto", platform: str | None = None) -> SecretBackend:
    """Build a backend by name, resolving ``auto`` from the platform.

    Args:
        name: Backend name, or ``auto`` to select by operating system
        platform: ``sys.platform`` value to select for (defaults to the host)

    Returns:
        A new backend instance configured from the settings
    """
    settings = get_settings()
    resolved = platform_backend_name(platform) if name == "auto" else name

    if resolved == "secret-service":
        return SecretServiceBackend(collection=settings.collection)
    if resolved == "keychain":
        return KeychainBackend(binary=settings.security_binary)
    if resolved == "credman":
        return CredManBackend()
    if resolved == "mock":
        return MockBackend()
    return UnsupportedPlatformBackend(platform)


def get_backend() -> SecretBackend:
    """Return the active backend, binding the configured one on first use."""
    global _backend
    if _backend is None:
        with _backend_lock:
            if _backend is None:
                _backend = create_backend(get_settings().backend)
                log.debug("backend_selected", backend=_backend.name, platform=sys.platform)
    return _backend


def install_backend(backend: SecretBackend) -> None:
    """Make ``backend`` the active backend for every subsequent call."""
    global _backend
    with _backend_lock:
        _backend = backend
    log.debug("backend_installed", backend=backend.name)


def install_mock_backend(error: Exception | None = None) -> MockBackend:
    """Install a fresh in-memory backend and return it.

    Calling it again discards the previous mock and its contents.

    Args:
        error: If given, every operation on the mock raises this exception

    Returns:
        The installed mock backend
    """
    backend = MockBackend(error=error)
    install_backend(backend)
    return backend


def reset_backend() -> None:
    """Forget the active backend so the next call binds one again."""
    global _backend
    with _backend_lock:
        _backend = None


def set_password(service: str, account: str, password: str) -> None:
    """Store ``password`` for ``(service, account)``, replacing any existing value.

    Raises:
        AccessDeniedError, UnsupportedError, BackendFailureError: From the backend
    """
    get_backend().set(service, account, password)


def get_password(service: str, account: str) -> str:
    """Return the password stored for ``(service, account)``.

    Raises:
        SecretNotFoundError: If nothing is stored for the key
        AccessDeniedError, UnsupportedError, BackendFailureError: From the backend
    """
    return get_backend().get(service, account)


def delete_password(service: str, account: str) -> None:
    """Delete the password stored for ``(service, account)``.

    Raises:
        SecretNotFoundError: If nothing is stored for the key
        AccessDeniedError, UnsupportedError, BackendFailureError: From the backend
    """
    get_backend().delete(service, account)


def delete_all(service: str) -> None:
    """Delete every password stored for ``service``.

    Raises:
        ValueError: If ``service`` is empty, which would match every item
        AccessDeniedError, UnsupportedError, BackendFailureError: From the backend
    """
    if not service:
        raise ValueError("Service cannot be empty")
    get_backend().delete_all(service)
