import logging
from typing import Optional

from ..core.config import settings
from ..core.exceptions import ApiKeyNotConfiguredError
from ..core.security import decrypt_secret, encrypt_secret
from ..db.queries import get_user_settings, save_user_settings

logger = logging.getLogger("recall-context.settings")

# Written over both columns when a key is deleted
NOT_CONFIGURED = "not-configured"

NOT_CONFIGURED_MESSAGE = "API key not configured. Please configure your Anthropic API key in settings."


class SettingsService:
    """
    Encrypted Anthropic API key storage, keyed by user id.

    Only the default user exists today; the user id is still threaded through
    so credentials stay a mapping rather than a singleton.
    """

    def __init__(self, user_id: Optional[str] = None) -> None:
        self.user_id = user_id or settings.DEFAULT_USER_ID

    def save_api_key(self, api_key: str) -> None:
        """Encrypt and store (or overwrite) the user's API key"""
        logger.info(f"Saving API key for user: {self.user_id}")
        encrypted, iv = encrypt_secret(api_key, self.user_id)
        save_user_settings(self.user_id, encrypted, iv)
        logger.info(f"API key saved successfully for user: {self.user_id}")

    def get_api_key(self) -> str:
        """
        Return the decrypted API key.

        Raises:
            ApiKeyNotConfiguredError: no key stored, or the key was deleted
            CredentialCryptoError: the stored key cannot be decrypted
        """
        logger.debug(f"Retrieving API key for user: {self.user_id}")
        row = get_user_settings(self.user_id)
        if not row or row["encrypted_api_key"] == NOT_CONFIGURED:
            raise ApiKeyNotConfiguredError(NOT_CONFIGURED_MESSAGE)
        return decrypt_secret(row["encrypted_api_key"], row["encryption_iv"], self.user_id)

    def is_api_key_configured(self) -> bool:
        row = get_user_settings(self.user_id)
        return bool(row) and row["encrypted_api_key"] != NOT_CONFIGURED

    def delete_api_key(self) -> None:
        """Logically delete the key by overwriting it with the sentinel"""
        logger.info(f"Deleting API key for user: {self.user_id}")
        if not get_user_settings(self.user_id):
            raise ApiKeyNotConfiguredError("API key not found")
        save_user_settings(self.user_id, NOT_CONFIGURED, NOT_CONFIGURED)
        logger.info(f"API key deleted successfully for user: {self.user_id}")
