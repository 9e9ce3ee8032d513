from educhain.utils.security import (
    hash_password,
    verify_password,
    generate_session_token,
    hash_session_token,
    sign_session_token,
    unsign_session_token,
)


def test_password_hash_verifies_only_the_original():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_session_tokens_are_random_and_hashed():
    a, b = generate_session_token(), generate_session_token()
    assert a != b
    assert len(a) == 64
    assert hash_session_token(a) != a
    assert hash_session_token(a) == hash_session_token(a)


def test_signed_cookie_rejects_tampering():
    signed = sign_session_token("tok", "k1")
    assert unsign_session_token(signed, "k1") == "tok"
    assert unsign_session_token(signed, "k2") is None
    assert unsign_session_token("tok", "k1") is None
