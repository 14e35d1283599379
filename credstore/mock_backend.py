"""In-memory backend for tests and host-independent runs."""

import threading

import structlog

from .exceptions import SecretNotFoundError

log = structlog.get_logger(__name__)


class MockBackend:
    """Process-local credential storage.

    Values live in a dictionary keyed by ``(service, account)`` and are
    returned unchanged; nothing is written to any OS credential store and
    nothing survives the process.

    If ``error`` is given, every operation raises it instead. This lets
    callers exercise their handling of access or backend failures without
    a real keyring.

    Example:
        >>> backend = MockBackend()
        >>> backend.set("my-app", "anon", "secret")
        >>> backend.get("my-app", "anon")
        'secret'
    """

    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self._secrets: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "mock"
        """
        return "mock"

    def set(self, service: str, account: str, value: str) -> None:
        self._raise_configured_error()
        with self._lock:
            self._secrets[(service, account)] = value
        log.debug("secret_stored", backend=self.name, service=service, account=account)

    def get(self, service: str, account: str) -> str:
        self._raise_configured_error()
        with self._lock:
            try:
                return self._secrets[(service, account)]
            except KeyError:
                raise SecretNotFoundError(
                    "Secret not found in mock backend", service=service, account=account
                ) from None

    def delete(self, service: str, account: str) -> None:
        self._raise_configured_error()
        with self._lock:
            if self._secrets.pop((service, account), None) is None:
                raise SecretNotFoundError(
                    "Secret not found in mock backend", service=service, account=account
                )
        log.debug("secret_deleted", backend=self.name, service=service, account=account)

    def delete_all(self, service: str) -> None:
        self._raise_configured_error()
        with self._lock:
            keys = [key for key in self._secrets if key[0] == service]
            for key in keys:
                del self._secrets[key]
        log.debug("service_cleared", backend=self.name, service=service, removed=len(keys))

    def _raise_configured_error(self) -> None:
        if self._error is not None:
            raise self._error
