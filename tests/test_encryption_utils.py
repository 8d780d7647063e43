import pytest
from cryptography.fernet import Fernet

from api.encryption_utils import (
    ENCRYPTION_KEY_ENV, encrypt_value, get_gemini_api_keys, get_jwt_secret_keys, get_secret,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [ENCRYPTION_KEY_ENV, 'GEMINI_API_KEY', 'JWT_SECRET_KEY',
                 'JWT_SECRET_KEY_CURRENT', 'JWT_SECRET_KEY_PREVIOUS', 'JWT_SECRET_KEY_NEXT'] + \
                [f'GEMINI_API_KEY_{i}' for i in range(1, 5)]:
        monkeypatch.delenv(name, raising=False)


def test_plain_values_without_encryption_key(monkeypatch):
    monkeypatch.setenv('GEMINI_API_KEY_1', 'plain-key')
    assert get_secret('GEMINI_API_KEY_1') == 'plain-key'


def test_encrypted_values_are_decrypted(monkeypatch):
    monkeypatch.setenv(ENCRYPTION_KEY_ENV, Fernet.generate_key().decode())
    monkeypatch.setenv('JWT_SECRET_KEY', encrypt_value('s3cret'))
    assert get_secret('JWT_SECRET_KEY') == 's3cret'


def test_undecryptable_value_is_used_raw(monkeypatch):
    monkeypatch.setenv(ENCRYPTION_KEY_ENV, Fernet.generate_key().decode())
    monkeypatch.setenv('JWT_SECRET_KEY', 'not-encrypted')
    assert get_secret('JWT_SECRET_KEY') == 'not-encrypted'


def test_gemini_keys_skip_gaps(monkeypatch):
    monkeypatch.setenv('GEMINI_API_KEY_1', 'a')
    monkeypatch.setenv('GEMINI_API_KEY_3', 'c')
    assert get_gemini_api_keys() == ['a', 'c']


def test_gemini_single_key_fallback(monkeypatch):
    monkeypatch.setenv('GEMINI_API_KEY', 'only')
    assert get_gemini_api_keys() == ['only']


def test_jwt_rotation_keys(monkeypatch):
    monkeypatch.setenv('JWT_SECRET_KEY_CURRENT', 'current')
    monkeypatch.setenv('JWT_SECRET_KEY_PREVIOUS', 'previous')
    monkeypatch.setenv('JWT_SECRET_KEY', 'ignored')
    assert get_jwt_secret_keys() == ['current', 'previous']


def test_encrypt_requires_key():
    with pytest.raises(ValueError):
        encrypt_value('x')
