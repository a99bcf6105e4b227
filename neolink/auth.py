"""
Password hashing: bcrypt via passlib.
"""
from passlib.context import CryptContext

from neolink.core.settings import get_settings

pwd_ctx = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """False for a mismatch or for a stored value that is not a recognizable hash."""
    try:
        return pwd_ctx.verify(plain, hashed)
    except ValueError:
        return False
