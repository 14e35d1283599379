"""macOS Keychain backend driven through the ``security`` command-line tool.

Every operation spawns one ``security`` process. Arguments are passed as an
argv list, never through a shell. For writes the secret is sent over stdin
in ``security -i`` interactive mode so it never appears in the process list.

Outcomes are classified purely from the exit status and stderr text:

- stderr containing ``NOT_FOUND_SIGNATURE`` -> ``SecretNotFoundError``
- stderr containing one of ``ACCESS_DENIED_SIGNATURES`` -> ``AccessDeniedError``
- any other non-zero exit -> ``BackendFailureError``

The signatures are English messages printed by ``security``; a localized or
future tool version that words them differently will surface as
``BackendFailureError`` instead.
"""

import base64
import binascii
import shlex
import subprocess
from collections.abc import Callable, Sequence
from typing import NoReturn

import structlog

from .exceptions import (
    AccessDeniedError,
    BackendFailureError,
    SecretNotFoundError,
    SecretTooLargeError,
    UnsupportedError,
)

log = structlog.get_logger(__name__)

DEFAULT_SECURITY_BINARY = "/usr/bin/security"

NOT_FOUND_SIGNATURE = "could not be found"
ACCESS_DENIED_SIGNATURES = (
    "User interaction is not allowed",
    "User canceled the operation",
    "authorization was denied",
)

# Values carrying this prefix were written by this backend and are base64
# encoded UTF-8. ``security -w`` prints non-ASCII passwords as hex, so the
# encoding keeps every text value round-trippable.
ENCODING_PREFIX = "credstore-base64:"

# ``security -i`` reads commands into a fixed-size line buffer.
MAX_INTERACTIVE_LINE = 4096

# Characters that end or truncate a command line read by ``security -i``.
LINE_BREAKING_CHARS = ("\n", "\r", "\0")

# Upper bound on delete passes in ``delete_all``.
MAX_DELETE_PASSES = 1000

CommandRunner = Callable[[Sequence[str], str | None], tuple[int, str, str]]


def run_command(args: Sequence[str], input_data: str | None = None) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    result = subprocess.run(
        list(args),
        input=input_data,
        capture_output=True,
        text=True,
    )
    return result.returncode, result.stdout, result.stderr


class KeychainBackend:
    """macOS Keychain storage using generic password items.

    Service and account map directly onto the item's ``-s`` and ``-a``
    attributes, so items are visible and editable in Keychain Access.

    Example:
        >>> backend = KeychainBackend()
        >>> backend.set("my-app", "anon", "secret")
        >>> backend.get("my-app", "anon")
        'secret'
    """

    def __init__(
        self,
        binary: str = DEFAULT_SECURITY_BINARY,
        runner: CommandRunner | None = None,
    ) -> None:
        """Initialize Keychain backend.

        Args:
            binary: Path to the ``security`` executable
            runner: Callable used to spawn processes; tests pass a fake
        """
        self.binary = binary
        self._runner = runner or run_command

    @property
    def name(self) -> str:
        """Get backend identifier.

        Returns:
            Backend name constant "keychain"
        """
        return "keychain"

    def set(self, service: str, account: str, value: str) -> None:
        """Store a generic password, updating it when it already exists.

        Raises:
            SecretTooLargeError: If the encoded command exceeds what
                ``security -i`` accepts
            AccessDeniedError: If the keychain refuses the write
            BackendFailureError: If ``security`` fails otherwise
        """
        for field in (service, account):
            if any(char in field for char in LINE_BREAKING_CHARS):
                raise BackendFailureError(
                    "Keychain service and account cannot contain line breaks or NUL characters",
                    service=service,
                    account=account,
                )

        encoded = ENCODING_PREFIX + base64.b64encode(value.encode("utf-8")).decode("ascii")
        command = " ".join(
            [
                "add-generic-password",
                "-U",
                "-s",
                shlex.quote(service),
                "-a",
                shlex.quote(account),
                "-X",
                encoded.encode("ascii").hex(),
            ]
        )
        line = command + "\n"
        if len(line.encode("utf-8")) > MAX_INTERACTIVE_LINE:
            raise SecretTooLargeError(
                f"Secret too large for Keychain (limit {MAX_INTERACTIVE_LINE} bytes per command)",
                service=service,
                account=account,
            )

        code, _, stderr = self._run(service, account, "-i", input_data=line)
        if code != 0:
            self._raise_for_failure(code, stderr, service, account, action="store", report_not_found=False)

        log.debug("secret_stored", backend=self.name, service=service, account=account)

    def get(self, service: str, account: str) -> str:
        code, stdout, stderr = self._run(
            service,
            account,
            "find-generic-password",
            "-s",
            service,
            "-a",
            account,
            "-w",
        )
        if code != 0:
            self._raise_for_failure(code, stderr, service, account, action="read")

        value = stdout.rstrip()
        log.debug("secret_read", backend=self.name, service=service, account=account)

        if not value.startswith(ENCODING_PREFIX):
            return value

        try:
            return base64.b64decode(value[len(ENCODING_PREFIX) :], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise BackendFailureError(
                f"Keychain returned a malformed encoded value: {e}",
                service=service,
                account=account,
            ) from e

    def delete(self, service: str, account: str) -> None:
        code, _, stderr = self._run(
            service,
            account,
            "delete-generic-password",
            "-s",
            service,
            "-a",
            account,
        )
        if code != 0:
            self._raise_for_failure(code, stderr, service, account, action="delete")

        log.debug("secret_deleted", backend=self.name, service=service, account=account)

    def delete_all(self, service: str) -> None:
        """Delete generic passwords for ``service`` until none remain."""
        removed = 0
        while True:
            if removed >= MAX_DELETE_PASSES:
                raise BackendFailureError(
                    f"Keychain still reports items after {MAX_DELETE_PASSES} deletions", service=service
                )
            code, _, stderr = self._run(service, None, "delete-generic-password", "-s", service)
            if code != 0:
                if NOT_FOUND_SIGNATURE in stderr:
                    break
                self._raise_for_failure(code, stderr, service, None, action="delete")
            removed += 1

        log.debug("service_cleared", backend=self.name, service=service, removed=removed)

    def _run(
        self,
        service: str,
        account: str | None,
        *args: str,
        input_data: str | None = None,
    ) -> tuple[int, str, str]:
        try:
            return self._runner([self.binary, *args], input_data)
        except FileNotFoundError as e:
            raise UnsupportedError(
                f"Keychain tool not found: {self.binary}",
                service=service,
                account=account,
                suggestion="The Keychain backend requires macOS",
            ) from e
        except OSError as e:
            raise BackendFailureError(
                f"Failed to run {self.binary}: {e}", service=service, account=account
            ) from e

    @staticmethod
    def _raise_for_failure(
        code: int,
        stderr: str,
        service: str,
        account: str | None,
        action: str,
        report_not_found: bool = True,
    ) -> NoReturn:
        message = stderr.strip()
        if report_not_found and NOT_FOUND_SIGNATURE in stderr:
            raise SecretNotFoundError("Secret not found in Keychain", service=service, account=account)
        if any(signature in stderr for signature in ACCESS_DENIED_SIGNATURES):
            raise AccessDeniedError(
                f"Keychain denied {action}: {message}", service=service, account=account
            )
        raise BackendFailureError(
            f"Failed to {action} secret in Keychain (exit {code}): {message}",
            service=service,
            account=account,
        )
