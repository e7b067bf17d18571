import base64
import os

import bcrypt
import pytest

from admin_backend.api.exceptions import BadRequestException
from admin_backend.auth.passwords import PasswordDigestError, PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


class TestPasswordHasher:

    def test_hash_is_bcrypt_and_salted(self, hasher):
        first = hasher.hash("Passw0rd!")
        second = hasher.hash("Passw0rd!")

        assert first.startswith("$2")
        assert first != second

    def test_verify_accepts_matching_password(self, hasher):
        digest = hasher.hash("Passw0rd!")
        assert hasher.verify("Passw0rd!", digest) is True

    def test_verify_rejects_other_password(self, hasher):
        digest = hasher.hash("Passw0rd!")
        assert hasher.verify("passw0rd!", digest) is False

    def test_verify_legacy_salted_digest(self, hasher):
        salt = base64.b64encode(os.urandom(8)).decode("ascii")
        hashed = bcrypt.hashpw(("secret" + salt).encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
        digest = f"{salt}:{hashed}"

        assert hasher.verify("secret", digest) is True
        assert hasher.verify("other", digest) is False

    @pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash"])
    def test_malformed_digest_raises(self, hasher, digest):
        with pytest.raises(PasswordDigestError):
            hasher.verify("secret", digest)

    def test_verify_treats_overlong_password_as_mismatch(self, hasher):
        digest = hasher.hash("Passw0rd!")

        assert hasher.verify("x" * 80, digest) is False
        # 40 two-byte characters
        assert hasher.verify("é" * 40, digest) is False

    def test_verify_legacy_overlong_candidate_is_mismatch(self, hasher):
        salt = base64.b64encode(os.urandom(8)).decode("ascii")
        hashed = bcrypt.hashpw(b"secret" + salt.encode("ascii"), bcrypt.gensalt(rounds=4)).decode("utf-8")

        assert hasher.verify("y" * 70, f"{salt}:{hashed}") is False

    def test_hash_rejects_overlong_password(self, hasher):
        with pytest.raises(BadRequestException):
            hasher.hash("é" * 40)

    def test_hash_accepts_72_bytes(self, hasher):
        plain = "a" * 72
        assert hasher.verify(plain, hasher.hash(plain)) is True
