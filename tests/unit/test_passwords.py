from bizhub.utils import passwords


def test_hash_and_verify_password():
    encoded = passwords.hash_password("s3cret-pass")
    assert encoded.startswith("$argon2id$")
    assert passwords.verify_password("s3cret-pass", encoded) is True
    assert passwords.verify_password("other", encoded) is False


def test_verify_password_rejects_empty_and_garbage():
    assert passwords.verify_password("", "whatever") is False
    assert passwords.verify_password("pw", "") is False
    assert passwords.verify_password("pw", "not-a-hash") is False


def test_session_tokens_hash_deterministically():
    token = passwords.generate_session_token()
    assert len(token) >= 32
    assert passwords.hash_session_token(token) == passwords.hash_session_token(token)
    assert passwords.hash_session_token(token) != passwords.hash_session_token(token + "x")
