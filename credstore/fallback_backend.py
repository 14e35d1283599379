"""Backend bound on platforms without a supported credential store."""

import sys
from typing import NoReturn

from .exceptions import UnsupportedError


class UnsupportedPlatformBackend:
    """Backend whose every operation raises ``UnsupportedError``."""

    def __init__(self, platform: str | None = None) -> None:
        self.platform = platform or sys.platform

    @property
    def name(self) -> str:
        return "unsupported"

    def set(self, service: str, account: str, value: str) -> None:
        self._unsupported(service, account)

    def get(self, service: str, account: str) -> str:
        self._unsupported(service, account)

    def delete(self, service: str, account: str) -> None:
        self._unsupported(service, account)

    def delete_all(self, service: str) -> None:
        self._unsupported(service)

    def _unsupported(self, service: str, account: str | None = None) -> NoReturn:
        raise UnsupportedError(
            f"No credential store is supported on platform '{self.platform}'",
            service=service,
            account=account,
            suggestion="Install the mock backend with credstore.install_mock_backend()",
        )
