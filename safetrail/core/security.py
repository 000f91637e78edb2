"""PIN hashing utilities."""

import bcrypt

from safetrail.core.config import settings


def hash_pin(pin: str) -> str:
    """Hash a plain PIN with a fresh random salt."""
    salt = bcrypt.gensalt(rounds=settings.pin_hash_rounds)
    return bcrypt.hashpw(pin.encode(), salt).decode()


def verify_pin(plain: str, hashed: str) -> bool:
    """Verify a plain PIN against a stored hash."""
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False
