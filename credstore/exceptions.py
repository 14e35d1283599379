"""Exception hierarchy for credstore.

Every backend translates its native failures into one of the classes below,
so callers can write portable logic regardless of which OS store is active.

Exception Hierarchy:
    CredStoreError (base)
    ├── SecretNotFoundError
    ├── AccessDeniedError
    ├── UnsupportedError
    │   └── CollectionNotFoundError (also a BackendFailureError)
    └── BackendFailureError
        ├── CollectionNotFoundError
        └── SecretTooLargeError

Example Usage:
    >>> import credstore
    >>> try:
    ...     token = credstore.get_password("my-app", "anon")
    ... except credstore.SecretNotFoundError:
    ...     token = prompt_for_token()
"""


class CredStoreError(Exception):
    """Base exception for all credstore errors.

    Attributes:
        message: Human-readable error description
        service: Service part of the credential key, if known
        account: Account part of the credential key, if known
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        service: str | None = None,
        account: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            service: Service the failing operation addressed
            account: Account the failing operation addressed
            suggestion: Optional suggestion for resolution
        """
        self.service = service
        self.account = account
        self.suggestion = suggestion

        full_message = message
        if service is not None:
            key = service if account is None else f"{service}/{account}"
            full_message = f"{message} (key: {key})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        self.message = message


class SecretNotFoundError(CredStoreError):
    """No credential exists for the given key.

    Raised by get and delete only; set never raises it.
    """


class AccessDeniedError(CredStoreError):
    """The backend refused the operation due to permissions or policy.

    Examples:
        - Keyring locked and the unlock prompt was dismissed
        - User declined an authorization dialog
        - OS policy denies access to the credential
    """


class UnsupportedError(CredStoreError):
    """A backend-specific precondition is missing.

    Examples:
        - No credential store exists for the current platform
        - Platform library (secretstorage, pywin32) not installed
        - Credential tool binary not present
    """


class BackendFailureError(CredStoreError):
    """Any other failure reported by the backend.

    Examples:
        - IPC transport error or service unreachable
        - Unexpected subprocess exit status or output
        - Stored value could not be decoded as UTF-8
    """


class CollectionNotFoundError(UnsupportedError, BackendFailureError):
    """The configured Secret Service collection does not exist.

    It is never created automatically. Callers handling either
    ``UnsupportedError`` or ``BackendFailureError`` will see it.
    """


class SecretTooLargeError(BackendFailureError):
    """The secret exceeds the size the backend can store."""
