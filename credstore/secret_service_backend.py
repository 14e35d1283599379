"""Secret Service backend for Linux and BSD desktops.

Talks to the freedesktop Secret Service (GNOME Keyring, KWallet, KeePassXC)
over D-Bus via ``secretstorage``. All items live in one named collection,
``login`` by default, which must already exist: this backend never creates
collections.

Items are identified by two exact-match attributes::

    {"service": <service>, "username": <account>}

Platform Support:
- Linux, FreeBSD, OpenBSD, NetBSD with a running Secret Service provider
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

try:
    import secretstorage
    from jeepney.wrappers import DBusErrorResponse
    from secretstorage.exceptions import (
        ItemNotFoundException,
        LockedException,
        PromptDismissedException,
        SecretServiceNotAvailableException,
        SecretStorageException,
    )

    SECRETSTORAGE_AVAILABLE = True
except ImportError:
    SECRETSTORAGE_AVAILABLE = False

from .exceptions import (
    AccessDeniedError,
    BackendFailureError,
    CollectionNotFoundError,
    SecretNotFoundError,
    UnsupportedError,
)

log = structlog.get_logger(__name__)

DEFAULT_COLLECTION = "login"

SERVICE_ATTRIBUTE = "service"
ACCOUNT_ATTRIBUTE = "username"

DBUS_ACCESS_DENIED = "org.freedesktop.DBus.Error.AccessDenied"


def item_attributes(service: str, account: str) -> dict[str, str]:
    """Return the attributes identifying a credential item."""
    return {SERVICE_ATTRIBUTE: service, ACCOUNT_ATTRIBUTE: account}


def item_label(service: str, account: str) -> str:
    """Return the human-readable label shown in keyring managers."""
    return f"Password for '{account}' on '{service}'"


class SecretServiceBackend:
    """Secret Service storage scoped to a single collection.

    A new D-Bus connection is opened for each operation and closed when it
    completes; the collection is unlocked on demand, which may show an
    unlock prompt to the user.

    Example:
        >>> backend = SecretServiceBackend(collection="login")
        >>> backend.set("my-app", "anon", "secret")
        >>> backend.get("my-app", "anon")
        'secret'
    """

    def __init__(self, collection: str = DEFAULT_COLLECTION) -> None:
        """Initialize Secret Service backend.

        Args:
            collection: Label, object-path name or alias of the collection
                that holds the items
        """
        self.collection = collection

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "secret-service"
        """
        return "secret-service"

    @property
    def available(self) -> bool:
        """Check whether ``secretstorage`` could be imported.

        This does not contact the service; connection failures surface as
        ``BackendFailureError`` from the operations themselves.
        """
        return SECRETSTORAGE_AVAILABLE

    def set(self, service: str, account: str, value: str) -> None:
        """Replace the secret of the matching item or create a new item.

        Raises:
            CollectionNotFoundError: If the configured collection is missing
            AccessDeniedError: If the collection stays locked
            BackendFailureError: For any other Secret Service failure
        """
        secret = value.encode("utf-8")
        attributes = item_attributes(service, account)

        with self._open_collection(service, account) as collection:
            items = list(collection.search_items(attributes))
            if items:
                items[0].set_secret(secret)
            else:
                collection.create_item(item_label(service, account), attributes, secret, replace=True)

        log.debug("secret_stored", backend=self.name, service=service, account=account)

    def get(self, service: str, account: str) -> str:
        with self._open_collection(service, account) as collection:
            items = list(collection.search_items(item_attributes(service, account)))
            if not items:
                raise SecretNotFoundError(
                    "Secret not found in Secret Service", service=service, account=account
                )

            item = items[0]
            if item.is_locked() and item.unlock():
                raise AccessDeniedError(
                    "Unlock prompt for the item was dismissed", service=service, account=account
                )
            secret = item.get_secret()

        try:
            value = bytes(secret).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BackendFailureError(
                "Secret Service returned a secret that is not valid UTF-8",
                service=service,
                account=account,
            ) from e

        log.debug("secret_read", backend=self.name, service=service, account=account)
        return value

    def delete(self, service: str, account: str) -> None:
        with self._open_collection(service, account) as collection:
            items = list(collection.search_items(item_attributes(service, account)))
            if not items:
                raise SecretNotFoundError(
                    "Secret not found in Secret Service", service=service, account=account
                )
            for item in items:
                item.delete()

        log.debug("secret_deleted", backend=self.name, service=service, account=account)

    def delete_all(self, service: str) -> None:
        with self._open_collection(service, None) as collection:
            items = list(collection.search_items({SERVICE_ATTRIBUTE: service}))
            for item in items:
                item.delete()

        log.debug("service_cleared", backend=self.name, service=service, removed=len(items))

    @contextmanager
    def _open_collection(self, service: str, account: str | None) -> Iterator[Any]:
        """Connect, locate and unlock the collection, translating failures."""
        if not self.available:
            raise UnsupportedError(
                "Secret Service backend is not available",
                service=service,
                account=account,
                suggestion="Install secretstorage: pip install secretstorage",
            )

        try:
            connection = secretstorage.dbus_init()
        except SecretServiceNotAvailableException as e:
            raise BackendFailureError(
                f"Secret Service is not reachable: {e}", service=service, account=account
            ) from e

        try:
            collection = self._find_collection(connection)
            if collection is None:
                raise CollectionNotFoundError(
                    f"Secret Service collection '{self.collection}' does not exist",
                    service=service,
                    account=account,
                    suggestion="Create the collection in your keyring manager",
                )
            if collection.is_locked() and collection.unlock():
                raise AccessDeniedError(
                    f"Unlock prompt for collection '{self.collection}' was dismissed",
                    service=service,
                    account=account,
                )
            yield collection
        except (LockedException, PromptDismissedException) as e:
            raise AccessDeniedError(
                f"Secret Service denied access: {e}", service=service, account=account
            ) from e
        except DBusErrorResponse as e:
            if e.name == DBUS_ACCESS_DENIED:
                raise AccessDeniedError(
                    f"Secret Service denied access: {e}", service=service, account=account
                ) from e
            raise BackendFailureError(
                f"Secret Service request failed: {e}", service=service, account=account
            ) from e
        except SecretStorageException as e:
            raise BackendFailureError(
                f"Secret Service request failed: {e}", service=service, account=account
            ) from e
        finally:
            connection.close()

    def _find_collection(self, connection: Any) -> Any | None:
        try:
            return secretstorage.get_collection_by_alias(connection, self.collection)
        except ItemNotFoundException:
            pass

        for collection in secretstorage.get_all_collections(connection):
            path_name = collection.collection_path.rsplit("/", 1)[-1]
            if path_name == self.collection or collection.get_label() == self.collection:
                return collection
        return None
