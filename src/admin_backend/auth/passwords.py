"""
Password hashing.

Digests are bcrypt strings, which carry their own cost and salt. Rows
migrated from the legacy scheme store ``saltBase64:bcryptHash``; those are
verified by appending the salt to the plain password.

bcrypt only looks at the first 72 bytes of its input and recent releases
refuse anything longer, so longer passwords are never hashed and never match.
"""

import bcrypt

from admin_backend.api.exceptions import BadRequestException, InternalServerException

DEFAULT_ROUNDS = 12
LEGACY_SEPARATOR = ":"
MAX_PASSWORD_BYTES = 72


class PasswordDigestError(InternalServerException):
    def __init__(self, detail=None):
        super().__init__(detail or "Stored password digest is malformed")


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


class PasswordHasher:

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        if password_too_long(plain):
            raise BadRequestException(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """
        Check ``plain`` against a stored digest.

        A candidate longer than bcrypt accepts is reported as a mismatch.

        Raises:
            PasswordDigestError: If the digest is not a bcrypt hash
        """
        if not digest:
            raise PasswordDigestError()

        salt, separator, hashed = digest.partition(LEGACY_SEPARATOR)
        if separator:
            candidate = plain + salt
        else:
            candidate, hashed = plain, digest

        if password_too_long(candidate):
            return False

        try:
            return bcrypt.checkpw(candidate.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as e:
            raise PasswordDigestError() from e
