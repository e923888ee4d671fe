import pytest

from bizhub.utils import secrets_box
from bizhub.utils.runtime import dev_mode_active, env_flag, env_int


def test_encrypt_decrypt_roundtrip():
    token = secrets_box.encrypt("mailbox-password")
    assert token != "mailbox-password"
    assert secrets_box.decrypt(token) == "mailbox-password"


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("EMAIL_ENCRYPTION_KEY", raising=False)
    with pytest.raises(secrets_box.EncryptionKeyMissing):
        secrets_box.encrypt("x")


def test_decrypt_with_other_key_fails(monkeypatch):
    token = secrets_box.encrypt("secret")
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
    with pytest.raises(ValueError):
        secrets_box.decrypt(token)


def test_malformed_key_raises_value_error(monkeypatch):
    monkeypatch.setenv("EMAIL_ENCRYPTION_KEY", "not-a-fernet-key")
    with pytest.raises(ValueError, match="not a valid Fernet key"):
        secrets_box.encrypt("x")


def test_dev_mode_guard(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "false")
    assert dev_mode_active() is False

    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    assert dev_mode_active() is True

    monkeypatch.setenv("APP_BASE_URL", "https://erp.example.com")
    with pytest.raises(RuntimeError):
        dev_mode_active()

    monkeypatch.setenv("DEV_MODE_ALLOWED_HOSTS", "erp.example.com")
    assert dev_mode_active() is True


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("SOME_FLAG", "Yes")
    assert env_flag("SOME_FLAG") is True
    monkeypatch.setenv("SOME_FLAG", "off")
    assert env_flag("SOME_FLAG", default=True) is False
    monkeypatch.setenv("SOME_FLAG", " ")
    assert env_flag("SOME_FLAG", default=True) is True

    monkeypatch.setenv("SOME_INT", "42")
    assert env_int("SOME_INT", 7) == 42
    monkeypatch.setenv("SOME_INT", "4x2")
    assert env_int("SOME_INT", 7) == 7
    monkeypatch.delenv("SOME_INT")
    assert env_int("SOME_INT", 7) == 7
