"""Tests for the macOS Keychain backend (security tool mocked)."""

import base64
import shlex
from unittest.mock import MagicMock

import pytest

from credstore import (
    AccessDeniedError,
    BackendFailureError,
    KeychainBackend,
    SecretNotFoundError,
    SecretTooLargeError,
    UnsupportedError,
)
from credstore.keychain_backend import ENCODING_PREFIX, MAX_DELETE_PASSES

NOT_FOUND_STDERR = (
    "security: SecKeychainSearchCopyNext: The specified item could not be found in the keychain.\n"
)


class FakeSecurity:
    """In-memory stand-in for the ``security`` binary."""

    def __init__(self):
        self.items: dict[tuple[str, str], str] = {}
        self.calls: list[tuple[list[str], str | None]] = []

    def __call__(self, args, input_data=None):
        args = list(args)
        self.calls.append((args, input_data))
        command = args[1:]

        if command == ["-i"]:
            return self._interactive(input_data)

        verb, options = command[0], self._options(command[1:])
        if verb == "find-generic-password":
            value = self.items.get((options["-s"], options["-a"]))
            if value is None:
                return 44, "", NOT_FOUND_STDERR
            return 0, value + "\n", ""
        if verb == "delete-generic-password":
            matches = [
                key
                for key in self.items
                if key[0] == options["-s"] and ("-a" not in options or key[1] == options["-a"])
            ]
            if not matches:
                return 44, "", NOT_FOUND_STDERR
            del self.items[matches[0]]
            return 0, "", ""
        return 1, "", f"unknown command {verb}\n"

    def _interactive(self, input_data):
        tokens = shlex.split(input_data)
        assert tokens[0] == "add-generic-password"
        assert "-U" in tokens
        options = self._options([t for t in tokens[1:] if t != "-U"])
        self.items[(options["-s"], options["-a"])] = bytes.fromhex(options["-X"]).decode("ascii")
        return 0, "", ""

    @staticmethod
    def _options(tokens):
        flags = {}
        i = 0
        while i < len(tokens):
            if tokens[i] == "-w":
                i += 1
                continue
            flags[tokens[i]] = tokens[i + 1]
            i += 2
        return flags


class TestKeychainBackend:
    """Test KeychainBackend functionality."""

    @pytest.fixture
    def security(self):
        """Create a fake security tool."""
        return FakeSecurity()

    @pytest.fixture
    def backend(self, security):
        """Create KeychainBackend wired to the fake tool."""
        return KeychainBackend(runner=security)

    def test_backend_name(self, backend):
        """Test backend name property."""
        assert backend.name == "keychain"

    def test_default_binary(self, backend):
        """Test the fixed security binary path."""
        assert backend.binary == "/usr/bin/security"

    def test_round_trip(self, backend):
        """Test set then get returns the value."""
        backend.set("my-app", "anon", "secret")

        assert backend.get("my-app", "anon") == "secret"

    def test_round_trip_non_ascii(self, backend):
        """Test non-ASCII text survives the tool's output format."""
        backend.set("my-app", "anon", "pässwörd ✓")

        assert backend.get("my-app", "anon") == "pässwörd ✓"

    def test_round_trip_preserves_surrounding_whitespace(self, backend):
        """Test encoded values keep leading and trailing whitespace."""
        backend.set("my-app", "anon", "  padded  ")

        assert backend.get("my-app", "anon") == "  padded  "

    def test_set_keeps_secret_out_of_argv(self, backend, security):
        """Test the secret travels over stdin, hex encoded."""
        backend.set("my-app", "anon", "secret")

        args, input_data = security.calls[-1]
        assert args == ["/usr/bin/security", "-i"]
        assert "secret" not in " ".join(args)
        assert "secret" not in input_data
        assert input_data.startswith("add-generic-password -U -s my-app -a anon -X ")
        assert input_data.endswith("\n")

    def test_set_quotes_service_and_account(self, backend, security):
        """Test fields with spaces and quotes are passed intact."""
        backend.set("my app; rm -rf /", "it's me", "secret")

        assert ("my app; rm -rf /", "it's me") in security.items
        assert backend.get("my app; rm -rf /", "it's me") == "secret"

    def test_set_overwrites(self, backend):
        """Test repeated set on the same key updates the value."""
        backend.set("my-app", "anon", "v1")
        backend.set("my-app", "anon", "v2")

        assert backend.get("my-app", "anon") == "v2"

    def test_set_too_large(self, backend, security):
        """Test oversize secrets are rejected before spawning."""
        with pytest.raises(SecretTooLargeError):
            backend.set("my-app", "anon", "x" * 4096)

        assert security.calls == []

    @pytest.mark.parametrize("char", ["\n", "\r", "\0"])
    @pytest.mark.parametrize("field", ["service", "account"])
    def test_set_rejects_line_breaks(self, field, char):
        """Test a line break in the key never reaches the interactive tool."""
        runner = MagicMock(return_value=(0, "", ""))
        backend = KeychainBackend(runner=runner)
        key = {"service": "my-app", "account": "anon"}
        key[field] += char + "delete-keychain login.keychain"

        with pytest.raises(BackendFailureError, match="line breaks"):
            backend.set(key["service"], key["account"], "secret")

        runner.assert_not_called()

    def test_set_writes_single_command_line(self, backend, security):
        """Test set sends exactly one line to the interactive tool."""
        backend.set("my app; x", "anon's", "secret")

        args, input_data = security.calls[-1]
        assert args == ["/usr/bin/security", "-i"]
        assert input_data.count("\n") == 1
        assert input_data.endswith("\n")

    def test_get_passes_structured_arguments(self, backend, security):
        """Test get argv construction."""
        security.items[("my-app", "anon")] = "plain"

        backend.get("my-app", "anon")

        assert security.calls[-1][0] == [
            "/usr/bin/security",
            "find-generic-password",
            "-s",
            "my-app",
            "-a",
            "anon",
            "-w",
        ]

    def test_get_returns_foreign_value_unchanged(self, backend, security):
        """Test items written by other tools are returned as printed."""
        security.items[("my-app", "anon")] = "plain-token"

        assert backend.get("my-app", "anon") == "plain-token"

    def test_get_strips_trailing_newline(self):
        """Test trailing newline from the tool is stripped."""
        runner = MagicMock(return_value=(0, "token\n\n", ""))
        backend = KeychainBackend(runner=runner)

        assert backend.get("my-app", "anon") == "token"

    def test_get_malformed_encoded_value(self):
        """Test a corrupt encoded value is a backend failure."""
        runner = MagicMock(return_value=(0, ENCODING_PREFIX + "!!!\n", ""))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError):
            backend.get("my-app", "anon")

    def test_get_decodes_prefixed_value(self):
        """Test the encoded form is decoded."""
        encoded = ENCODING_PREFIX + base64.b64encode("héllo".encode()).decode()
        runner = MagicMock(return_value=(0, encoded + "\n", ""))
        backend = KeychainBackend(runner=runner)

        assert backend.get("my-app", "anon") == "héllo"

    def test_get_not_found(self, backend):
        """Test the not-found stderr signature."""
        with pytest.raises(SecretNotFoundError) as exc_info:
            backend.get("my-app", "anon")

        assert exc_info.value.service == "my-app"

    def test_get_access_denied(self):
        """Test locked keychain without UI maps to AccessDenied."""
        runner = MagicMock(
            return_value=(36, "", "security: SecKeychainItemCopyContent: User interaction is not allowed.\n")
        )
        backend = KeychainBackend(runner=runner)

        with pytest.raises(AccessDeniedError):
            backend.get("my-app", "anon")

    def test_get_other_failure(self):
        """Test any other nonzero exit is a backend failure."""
        runner = MagicMock(return_value=(1, "", "security: something odd happened\n"))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError) as exc_info:
            backend.get("my-app", "anon")

        assert "exit 1" in str(exc_info.value)

    def test_set_never_reports_not_found(self):
        """Test a not-found message during set is a backend failure."""
        runner = MagicMock(return_value=(44, "", NOT_FOUND_STDERR))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError):
            backend.set("my-app", "anon", "secret")

    def test_delete(self, backend):
        """Test delete then get reports NotFound."""
        backend.set("my-app", "anon", "secret")

        backend.delete("my-app", "anon")

        with pytest.raises(SecretNotFoundError):
            backend.get("my-app", "anon")

    def test_double_delete(self, backend):
        """Test a second delete reports NotFound."""
        backend.set("my-app", "anon", "secret")
        backend.delete("my-app", "anon")

        with pytest.raises(SecretNotFoundError):
            backend.delete("my-app", "anon")

    def test_key_isolation(self, backend):
        """Test same account under different services."""
        backend.set("svc1", "u", "v1")
        backend.set("svc2", "u", "v2")

        assert backend.get("svc1", "u") == "v1"
        assert backend.get("svc2", "u") == "v2"

    def test_delete_all(self, backend, security):
        """Test delete_all loops until the tool reports not found."""
        backend.set("my-app", "anon", "1")
        backend.set("my-app", "admin", "2")
        backend.set("other", "anon", "3")

        backend.delete_all("my-app")

        assert list(security.items) == [("other", "anon")]

    def test_delete_all_propagates_failures(self):
        """Test delete_all surfaces non-not-found failures."""
        runner = MagicMock(return_value=(1, "", "security: boom\n"))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError):
            backend.delete_all("my-app")

    def test_delete_all_stops_after_pass_limit(self):
        """Test delete_all gives up when the tool never reports not found."""
        runner = MagicMock(return_value=(0, "", ""))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError, match="still reports items"):
            backend.delete_all("my-app")

        assert runner.call_count == MAX_DELETE_PASSES

    def test_missing_binary_is_unsupported(self):
        """Test a missing security tool maps to Unsupported."""
        runner = MagicMock(side_effect=FileNotFoundError("no such file"))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(UnsupportedError):
            backend.get("my-app", "anon")

    def test_spawn_error_is_backend_failure(self):
        """Test other OS errors while spawning."""
        runner = MagicMock(side_effect=PermissionError("denied"))
        backend = KeychainBackend(runner=runner)

        with pytest.raises(BackendFailureError):
            backend.delete("my-app", "anon")

    def test_custom_binary(self):
        """Test the configured binary path is used."""
        runner = MagicMock(return_value=(0, "x\n", ""))
        backend = KeychainBackend(binary="/opt/bin/security", runner=runner)

        backend.get("my-app", "anon")

        assert runner.call_args[0][0][0] == "/opt/bin/security"
