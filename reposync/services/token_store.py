"""Token storage in the OS keychain (macOS Keychain, Windows Credential Manager, Secret Service)."""

from __future__ import annotations

from typing import Optional

import keyring
import keyring.errors

from ..infrastructure.error_handler import SyncError
from ..infrastructure.logger import logger

KEYRING_SERVICE = "reposync"


class TokenStore:
    """Keeps one access token per user id in the system keyring."""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def load(self, user_id: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service, user_id)
        except keyring.errors.KeyringError as e:
            raise SyncError("Could not read the token from the system keyring", e) from e

    def save(self, user_id: str, token: str) -> None:
        if not token:
            raise ValueError("Token is required")
        try:
            keyring.set_password(self.service, user_id, token)
        except keyring.errors.KeyringError as e:
            raise SyncError("Could not store the token in the system keyring", e) from e
        logger.debug(f"Stored token for {user_id} in keyring service {self.service}")

    def delete(self, user_id: str) -> bool:
        """Remove the user's token; False when there was none."""
        try:
            keyring.delete_password(self.service, user_id)
        except keyring.errors.PasswordDeleteError:
            return False
        except keyring.errors.KeyringError as e:
            raise SyncError("Could not remove the token from the system keyring", e) from e
        return True


__all__ = ["KEYRING_SERVICE", "TokenStore"]
