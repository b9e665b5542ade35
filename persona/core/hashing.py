"""Password hashing with bcrypt.

bcrypt is CPU-bound (~250ms at cost 12), so both operations run in a
worker thread to keep the event loop responsive.
"""

import asyncio

import bcrypt

# bcrypt cost factor for password hashing
DEFAULT_ROUNDS = 12


class BcryptHasher:
    """Hash and verify passwords with bcrypt.

    Attributes:
        rounds: bcrypt cost factor used for new hashes.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds

    async def make(self, plain: str) -> str:
        """Hash a plain-text password.

        Args:
            plain: Plain-text password.

        Returns:
            bcrypt hash as a string.
        """
        hashed = await asyncio.to_thread(
            bcrypt.hashpw, plain.encode(), bcrypt.gensalt(rounds=self.rounds)
        )
        return hashed.decode()

    async def verify(self, plain: str, hashed: str | None) -> bool:
        """Check a plain-text password against a stored hash.

        Missing or malformed hashes never match.

        Args:
            plain: Candidate plain-text password.
            hashed: Stored bcrypt hash.

        Returns:
            True if the password matches the hash.
        """
        if not plain or not hashed:
            return False
        try:
            return await asyncio.to_thread(
                bcrypt.checkpw, plain.encode(), hashed.encode()
            )
        except ValueError:
            # Invalid salt / oversized input
            return False
