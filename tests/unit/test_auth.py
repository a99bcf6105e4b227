"""Unit tests for auth: password hashing and verification."""
from neolink.auth import hash_password, pwd_ctx, verify_password


def test_hash_password_and_verify():
    """Hashing and verifying password round-trips correctly."""
    plain = "secret123"
    hashed = hash_password(plain)
    assert hashed != plain
    assert verify_password(plain, hashed) is True
    assert verify_password("wrong", hashed) is False


def test_hash_is_salted():
    assert hash_password("same") != hash_password("same")


def test_hash_is_bcrypt():
    assert pwd_ctx.identify(hash_password("x")) == "bcrypt"


def test_verify_against_non_hash_returns_false():
    """A stored value that is not a recognizable hash never matches."""
    assert verify_password("secret", "secret") is False
    assert verify_password("secret", "[REDACTED]") is False
