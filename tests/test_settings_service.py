import pytest

from recall.core.exceptions import ApiKeyNotConfiguredError, CredentialCryptoError
from recall.db.queries import get_user_settings
from recall.services.settings_service import NOT_CONFIGURED, SettingsService

API_KEY = "sk-ant-api03-settings-test"


def test_save_and_get_api_key():
    service = SettingsService()
    service.save_api_key(API_KEY)

    assert service.get_api_key() == API_KEY
    assert service.is_api_key_configured()

def test_key_is_stored_encrypted():
    SettingsService().save_api_key(API_KEY)

    row = get_user_settings("default-user")
    assert row["encrypted_api_key"] != API_KEY
    assert API_KEY not in row["encrypted_api_key"]
    assert row["encryption_iv"]

def test_saving_twice_overwrites_single_row():
    service = SettingsService()
    service.save_api_key("sk-first")
    service.save_api_key("sk-second")

    assert service.get_api_key() == "sk-second"

def test_missing_key_raises_not_configured():
    service = SettingsService()

    assert not service.is_api_key_configured()
    with pytest.raises(ApiKeyNotConfiguredError):
        service.get_api_key()

def test_delete_writes_sentinel():
    service = SettingsService()
    service.save_api_key(API_KEY)
    service.delete_api_key()

    row = get_user_settings("default-user")
    assert row["encrypted_api_key"] == NOT_CONFIGURED
    assert row["encryption_iv"] == NOT_CONFIGURED
    assert not service.is_api_key_configured()
    with pytest.raises(ApiKeyNotConfiguredError):
        service.get_api_key()

def test_delete_without_key_raises():
    with pytest.raises(ApiKeyNotConfiguredError):
        SettingsService().delete_api_key()

def test_keys_are_isolated_per_user():
    SettingsService("alice").save_api_key("sk-alice")
    SettingsService("bob").save_api_key("sk-bob")

    assert SettingsService("alice").get_api_key() == "sk-alice"
    assert SettingsService("bob").get_api_key() == "sk-bob"
    with pytest.raises(ApiKeyNotConfiguredError):
        SettingsService("carol").get_api_key()

def test_key_saved_under_other_secret_cannot_be_read(monkeypatch):
    from recall.core.config import settings

    service = SettingsService()
    service.save_api_key(API_KEY)
    monkeypatch.setattr(settings, "ENCRYPTION_SECRET", "rotated-secret")

    with pytest.raises(CredentialCryptoError):
        service.get_api_key()
