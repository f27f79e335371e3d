"""Password hashing for locally managed user accounts.

Sign-in itself goes through the OIDC provider; the hash is kept for
accounts created by administrators and is never returned by the API.
"""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)
