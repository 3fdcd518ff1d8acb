"""
Bearer tokens for the source and destination repositories.

Source reads use a login token for the source account. Destination asset
writes use the write API key; destination reads fall back to a login token
for the destination account when no key is configured. Login tokens are
cached through the session manager when one is given.
"""

from typing import Callable, Optional

from logging_config import logger
from secrets_manager import MigrationSettings, ConfigurationError


class TokenProvider:

    def __init__(self, settings: MigrationSettings, login: Callable[[str, str], str],
                 sessions=None):
        self.settings = settings
        self.login = login
        self.sessions = sessions

    def _login_cached(self, account: str, email: str, password: str) -> str:
        if self.sessions:
            token = self.sessions.get_token(account)
            if token:
                return token
        token = self.login(email, password)
        if self.sessions:
            self.sessions.store_token(account, token)
        return token

    def read_token(self) -> str:
        """Token for the source repository account."""
        self.settings.require("source_email", "source_password")
        return self._login_cached(
            f"source:{self.settings.source_email}",
            self.settings.source_email,
            self.settings.source_password,
        )

    def destination_token(self) -> str:
        """Login token for the destination repository account."""
        self.settings.require("destination_email", "destination_password")
        return self._login_cached(
            f"destination:{self.settings.destination_email}",
            self.settings.destination_email,
            self.settings.destination_password,
        )

    def write_token(self) -> str:
        """Write API key for the destination repository."""
        self.settings.require("write_api_key")
        return self.settings.write_api_key

    def destination_read_token(self) -> str:
        try:
            return self.write_token()
        except ConfigurationError:
            logger.info("Write API key not set, using destination login token")
            return self.destination_token()

    def optional_read_token(self) -> Optional[str]:
        """Source token, or None to try the request unauthenticated."""
        try:
            return self.read_token()
        except Exception as e:
            logger.info(f"Failed to get read token, trying without authentication: {e}")
            return None
