import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from jose import JWTError, jwt

from errors import InvalidInputError, SigningError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def password_fits(plaintext: str) -> bool:
    return len(plaintext.encode("utf-8")) <= MAX_PASSWORD_BYTES


class PasswordHasher:
    """bcrypt password hashing."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        if not password_fits(plaintext):
            raise InvalidInputError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        try:
            digest = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        except ValueError as e:
            raise InvalidInputError(f"Password cannot be hashed: {e}") from e
        return digest.decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        if not password_fits(plaintext):
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            logger.warning("Stored password hash could not be parsed")
            return False


class TokenIssuer:
    """Signs and verifies the bearer tokens handed out at register/login."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expiration_minutes: int = 60) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expiration_minutes = expiration_minutes

    def sign(self, claims: Dict[str, Any]) -> str:
        to_encode = dict(claims)
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.expiration_minutes)
        to_encode.update({"exp": expire})
        try:
            return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        except JWTError as e:
            raise SigningError(f"Could not sign token: {e}") from e

    def decode(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid token. Raises ``JWTError`` otherwise."""
        return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
