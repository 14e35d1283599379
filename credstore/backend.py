"""Abstract backend protocol for credential storage."""

from typing import Protocol


class SecretBackend(Protocol):
    """Protocol defining the interface for credential storage backends.

    All backends must implement these methods to be installable as the
    active backend behind the module-level functions in ``credstore``.
    """

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'keychain', 'mock')."""
        ...

    def set(self, service: str, account: str, value: str) -> None:
        """Store a credential, replacing any existing value.

        Args:
            service: Service identifier
            account: Account within the service
            value: Secret value to store

        Raises:
            AccessDeniedError: If the backend refuses the write
            UnsupportedError: If the backend cannot run on this system
            BackendFailureError: For any other backend failure
        """
        ...

    def get(self, service: str, account: str) -> str:
        """Retrieve a credential.

        Args:
            service: Service identifier (e.g., 'my-app')
            account: Account within the service (e.g., 'anon')

        Returns:
            The value most recently stored for the key

        Raises:
            SecretNotFoundError: If no credential exists for the key
            AccessDeniedError: If the backend refuses the read
            UnsupportedError: If the backend cannot run on this system
            BackendFailureError: For any other backend failure
        """
        ...

    def delete(self, service: str, account: str) -> None:
        """Delete a credential.

        Args:
            service: Service identifier
            account: Account within the service

        Raises:
            SecretNotFoundError: If no credential exists for the key
            AccessDeniedError: If the backend refuses the deletion
            UnsupportedError: If the backend cannot run on this system
            BackendFailureError: For any other backend failure
        """
        ...

    def delete_all(self, service: str) -> None:
        """Delete every credential stored under a service.

        Succeeds when nothing is stored for the service.

        Args:
            service: Service identifier

        Raises:
            AccessDeniedError: If the backend refuses a deletion
            UnsupportedError: If the backend cannot run on this system
            BackendFailureError: For any other backend failure
        """
        ...
