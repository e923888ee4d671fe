from bizhub.utils.api_key_crypto import (
    KEY_PREFIX,
    build_key_string,
    derive_display_parts,
    generate_key,
    hash_secret,
    looks_like_api_key,
    parse_key,
    verify_secret,
)


def test_parse_key_and_build_roundtrip():
    tid = "abc123def4567890"
    secret = "s3cr3t_part_with_underscores"
    key = build_key_string(tid, secret)
    parsed = parse_key(key)
    assert parsed and parsed.token_id == tid and parsed.secret == secret

    assert parse_key("") is None
    assert parse_key("notvalid") is None
    assert parse_key(KEY_PREFIX + "nounderscore") is None
    assert parse_key(KEY_PREFIX + "_secretonly") is None


def test_hash_and_verify_secret_sha256():
    h = hash_secret("topsecret")
    assert len(h) == 64
    assert verify_secret("topsecret", h) is True
    assert verify_secret("wrong", h) is False
    assert verify_secret("", h) is False


def test_display_parts_and_generate_key():
    tid, sec, key = generate_key()
    assert key.startswith(KEY_PREFIX)
    assert "_" not in tid
    prefix, last4 = derive_display_parts(key)
    assert len(prefix) == 8
    assert last4 == sec[-4:]
    assert derive_display_parts("bogus") == ("", "")


def test_looks_like_api_key():
    assert looks_like_api_key("bz_abc_def")
    assert not looks_like_api_key("session-token")
    assert not looks_like_api_key(None)
