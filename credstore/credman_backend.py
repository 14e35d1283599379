"""Windows Credential Manager backend.

The Credential Manager has a single flat namespace of target names, so the
service and account are joined into one combined target::

    combined_target("my-app", "anon") == "my-app:anon"

Two distinct keys whose fields contain the separator can produce the same
target (``("a:b", "c")`` and ``("a", "b:c")`` both give ``"a:b:c"``) and
therefore share one credential.

Secrets are stored as UTF-8 bytes in the credential blob and decoded on
read; a blob that is not valid UTF-8 is reported as a backend failure.
"""

import structlog

try:
    import pywintypes
    import win32cred

    WIN32CRED_AVAILABLE = True
except ImportError:
    WIN32CRED_AVAILABLE = False

from .exceptions import (
    AccessDeniedError,
    BackendFailureError,
    SecretNotFoundError,
    SecretTooLargeError,
    UnsupportedError,
)

log = structlog.get_logger(__name__)

TARGET_SEPARATOR = ":"

# Win32 error codes, see winerror.h
ERROR_ACCESS_DENIED = 5
ERROR_NOT_FOUND = 1168

# CRED_MAX_CREDENTIAL_BLOB_SIZE (5 * 512)
MAX_BLOB_SIZE = 2560


def combined_target(service: str, account: str) -> str:
    """Build the Credential Manager target name for a key."""
    return f"{service}{TARGET_SEPARATOR}{account}"


class CredManBackend:
    """Windows Credential Manager storage using generic credentials.

    Example:
        >>> backend = CredManBackend()
        >>> backend.set("my-app", "anon", "secret")
        >>> backend.get("my-app", "anon")
        'secret'
    """

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "credman"
        """
        return "credman"

    @property
    def available(self) -> bool:
        """Check whether pywin32's credential API could be imported."""
        return WIN32CRED_AVAILABLE

    def set(self, service: str, account: str, value: str) -> None:
        """Write or overwrite the generic credential for a key.

        Raises:
            SecretTooLargeError: If the UTF-8 encoded value exceeds the
                Credential Manager blob limit
            AccessDeniedError: If Windows denies the write
            BackendFailureError: For any other API failure
        """
        self._require_available(service, account)

        blob = value.encode("utf-8")
        if len(blob) > MAX_BLOB_SIZE:
            raise SecretTooLargeError(
                f"Secret too large for Credential Manager ({len(blob)} > {MAX_BLOB_SIZE} bytes)",
                service=service,
                account=account,
            )

        credential = {
            "Type": win32cred.CRED_TYPE_GENERIC,
            "TargetName": combined_target(service, account),
            "UserName": account,
            "CredentialBlob": blob,
            "Persist": win32cred.CRED_PERSIST_ENTERPRISE,
        }
        try:
            win32cred.CredWrite(credential, 0)
        except pywintypes.error as e:
            raise self._translate(e, service, account, action="store", report_not_found=False) from e

        log.debug("secret_stored", backend=self.name, service=service, account=account)

    def get(self, service: str, account: str) -> str:
        self._require_available(service, account)

        try:
            credential = win32cred.CredRead(
                Type=win32cred.CRED_TYPE_GENERIC,
                TargetName=combined_target(service, account),
            )
        except pywintypes.error as e:
            raise self._translate(e, service, account, action="read") from e

        blob = credential["CredentialBlob"] or b""
        try:
            value = bytes(blob).decode("utf-8")
        except UnicodeDecodeError as e:
            raise BackendFailureError(
                "Credential Manager blob is not valid UTF-8", service=service, account=account
            ) from e

        log.debug("secret_read", backend=self.name, service=service, account=account)
        return value

    def delete(self, service: str, account: str) -> None:
        self._require_available(service, account)

        try:
            win32cred.CredDelete(
                Type=win32cred.CRED_TYPE_GENERIC,
                TargetName=combined_target(service, account),
            )
        except pywintypes.error as e:
            raise self._translate(e, service, account, action="delete") from e

        log.debug("secret_deleted", backend=self.name, service=service, account=account)

    def delete_all(self, service: str) -> None:
        """Delete every generic credential whose target starts with ``service:``.

        The enumeration filter treats ``*`` as a wildcard, so targets are
        re-checked by prefix before deletion.
        """
        self._require_available(service)

        prefix = service + TARGET_SEPARATOR
        try:
            credentials = win32cred.CredEnumerate(prefix + "*", 0)
        except pywintypes.error as e:
            if e.winerror == ERROR_NOT_FOUND:
                return
            raise self._translate(e, service, None, action="enumerate") from e

        removed = 0
        for credential in credentials:
            target = credential["TargetName"]
            if credential["Type"] != win32cred.CRED_TYPE_GENERIC or not target.startswith(prefix):
                continue
            try:
                win32cred.CredDelete(Type=win32cred.CRED_TYPE_GENERIC, TargetName=target)
            except pywintypes.error as e:
                if e.winerror == ERROR_NOT_FOUND:
                    continue
                raise self._translate(e, service, None, action="delete") from e
            removed += 1

        log.debug("service_cleared", backend=self.name, service=service, removed=removed)

    def _require_available(self, service: str, account: str | None = None) -> None:
        if not self.available:
            raise UnsupportedError(
                "Credential Manager backend is not available",
                service=service,
                account=account,
                suggestion="Install pywin32 on Windows: pip install pywin32",
            )

    @staticmethod
    def _translate(
        error: Exception,
        service: str,
        account: str | None,
        action: str,
        report_not_found: bool = True,
    ) -> Exception:
        code = getattr(error, "winerror", None)
        detail = getattr(error, "strerror", None) or str(error)
        if report_not_found and code == ERROR_NOT_FOUND:
            return SecretNotFoundError(
                "Secret not found in Credential Manager", service=service, account=account
            )
        if code == ERROR_ACCESS_DENIED:
            return AccessDeniedError(
                f"Credential Manager denied {action}: {detail}", service=service, account=account
            )
        return BackendFailureError(
            f"Failed to {action} credential in Credential Manager: {detail}",
            service=service,
            account=account,
        )
