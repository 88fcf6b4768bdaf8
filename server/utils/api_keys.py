"""Project API key utilities for CI authentication."""

import secrets

import bcrypt

API_KEY_BYTES = 32


def generate_api_key() -> str:
    """Generate a new random API key (hex encoded)."""
    return secrets.token_hex(API_KEY_BYTES)


def hash_api_key(api_key: str) -> str:
    """Hash an API key using bcrypt.

    Args:
        api_key: Plain text API key

    Returns:
        Hashed key string
    """
    if not api_key:
        raise ValueError("API key must not be empty")

    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(api_key.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_api_key(api_key: str, hashed_api_key: str | None) -> bool:
    """Verify a presented API key against the stored hash.

    Args:
        api_key: Key taken from the Authorization header
        hashed_api_key: Hash stored on the project, may be None

    Returns:
        True if the key matches, False otherwise
    """
    if not api_key or not hashed_api_key:
        return False

    try:
        return bcrypt.checkpw(api_key.encode("utf-8"), hashed_api_key.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def parse_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer <token>`` header, or None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):]
