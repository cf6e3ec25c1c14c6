"""
Password hashing utilities using bcrypt.
"""

import bcrypt

from vidtube.kernel.errors import HashingFailure
from vidtube.logging_config import get_logger

logger = get_logger(__name__)

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of the secret
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Salted, adaptive-cost password hashing.

    Both methods are CPU-bound. Callers on the event loop should run them
    in a worker thread.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        """Encode and truncate to the bcrypt limit, identically for hash and verify."""
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string

        Raises:
            HashingFailure: If the bcrypt primitive errors
        """
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            hashed = bcrypt.hashpw(self._encode(password), salt)
        except (ValueError, TypeError) as exc:
            logger.error("bcrypt hashing failed: %s", exc)
            raise HashingFailure() from exc
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        A mismatch returns False. Only a malformed stored hash raises.

        Raises:
            HashingFailure: If ``hashed_password`` is not a bcrypt hash
        """
        try:
            return bcrypt.checkpw(
                self._encode(plain_password),
                hashed_password.encode("utf-8"),
            )
        except (ValueError, TypeError) as exc:
            logger.error("Stored password hash is malformed: %s", exc)
            raise HashingFailure() from exc

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was produced with a different cost than configured."""
        # Format: $2b$XX$... where XX is the rounds
        parts = hashed_password.split("$")
        if len(parts) < 3 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds


_default_hasher = PasswordHasher()


# Convenience functions
def hash_password(password: str) -> str:
    """Hash a password."""
    return _default_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password."""
    return _default_hasher.verify(plain_password, hashed_password)
