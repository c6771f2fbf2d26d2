"""
Master credential hashing for the password manager.

LEGAL NOTICE:
This module handles master password digests. It must only be used
for legitimate personal password management on devices you own or administer.
"""

import os
import base64
import binascii
import logging
from contextlib import contextmanager
from typing import Iterator, Tuple, Union

from argon2 import Type, extract_parameters
from argon2.exceptions import HashingError, InvalidHashError
from argon2.low_level import ARGON2_VERSION, hash_secret
from cryptography.hazmat.primitives import constant_time

from . import config
from .errors import CorruptCredential

logger = logging.getLogger(__name__)

Credential = Union[str, bytes, bytearray]


class CredentialHasher:
    """Derives and checks salted Argon2id digests of master credentials."""

    def __init__(
        self,
        time_cost: int = config.ARGON2_TIME_COST,
        memory_cost: int = config.ARGON2_MEMORY_COST,
        parallelism: int = config.ARGON2_PARALLELISM,
        hash_len: int = config.ARGON2_HASH_LEN,
        salt_size: int = config.SALT_SIZE,
    ):
        """
        Initialize the hasher.

        Args:
            time_cost: Argon2id iterations
            memory_cost: Argon2id memory in KiB
            parallelism: Argon2id lanes
            hash_len: Raw digest length in bytes
            salt_size: Width of every generated salt in bytes
        """
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        self.hash_len = hash_len
        self.salt_size = salt_size
        self._dummy = self._throwaway_digest()

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(self.salt_size)

    def hash(self, plaintext: Credential) -> Tuple[str, bytes]:
        """
        Hash a master credential under a fresh salt.

        Args:
            plaintext: The master credential

        Returns:
            Tuple of (encoded digest, salt). The digest records the
            algorithm and cost parameters used, so later verification does
            not depend on this hasher's settings.
        """
        salt = self.generate_salt()
        logger.debug(f"Hashing credential with Argon2id t={self.time_cost} m={self.memory_cost} p={self.parallelism}")
        with credential_bytes(plaintext) as secret:
            digest = hash_secret(
                secret=bytes(secret),
                salt=salt,
                time_cost=self.time_cost,
                memory_cost=self.memory_cost,
                parallelism=self.parallelism,
                hash_len=self.hash_len,
                type=Type.ID,
            )
        return digest.decode('ascii'), salt

    def verify(self, plaintext: Credential, digest: str, salt: bytes) -> bool:
        """
        Check a candidate credential against a stored digest and salt.

        Returns:
            True if the candidate matches, False otherwise

        Raises:
            CorruptCredential: If the stored digest or salt is malformed
        """
        try:
            params = extract_parameters(digest)
        except (InvalidHashError, AttributeError, TypeError, ValueError) as e:
            raise CorruptCredential("Stored credential digest is malformed") from e
        if params.type is not Type.ID:
            raise CorruptCredential(f"Unexpected digest algorithm: {params.type.name}")
        try:
            expected = digest.encode('ascii')
        except UnicodeEncodeError as e:
            raise CorruptCredential("Stored credential digest is malformed") from e
        if not isinstance(salt, (bytes, bytearray)) or len(salt) != params.salt_len:
            raise CorruptCredential("Stored credential salt does not match its digest")
        if not self.secure_compare(self._embedded_salt(expected), bytes(salt)):
            raise CorruptCredential("Stored credential salt does not match its digest")

        with credential_bytes(plaintext) as secret:
            try:
                candidate = hash_secret(
                    secret=bytes(secret),
                    salt=bytes(salt),
                    time_cost=params.time_cost,
                    memory_cost=params.memory_cost,
                    parallelism=params.parallelism,
                    hash_len=params.hash_len,
                    type=params.type,
                    version=params.version,
                )
            except HashingError as e:
                raise CorruptCredential("Stored credential parameters are out of range") from e
        return self.secure_compare(candidate, expected)

    def dummy_verify(self, plaintext: Credential) -> None:
        """Spend one full verification on a throwaway digest.

        Used when an account name is unknown so that the failure takes as
        long as a wrong password would.
        """
        digest, salt = self._dummy
        self.verify(plaintext, digest, salt)

    def _throwaway_digest(self) -> Tuple[str, bytes]:
        """Encode a random digest with this hasher's costs without running Argon2."""
        salt = self.generate_salt()
        fields = (
            "argon2id",
            f"v={ARGON2_VERSION}",
            f"m={self.memory_cost},t={self.time_cost},p={self.parallelism}",
            _b64_unpadded(salt),
            _b64_unpadded(os.urandom(self.hash_len)),
        )
        return "$" + "$".join(fields), salt

    @staticmethod
    def _embedded_salt(encoded: bytes) -> bytes:
        """Decode the salt field of a PHC-encoded digest."""
        field = encoded.split(b"$")[-2]
        try:
            return base64.b64decode(field + b"=" * (-len(field) % 4), validate=True)
        except binascii.Error as e:
            raise CorruptCredential("Stored credential salt field is malformed") from e

    @staticmethod
    def secure_compare(a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return constant_time.bytes_eq(a, b)

    @staticmethod
    def clear_bytes(data: bytearray) -> None:
        """Attempt to clear sensitive bytes from memory."""
        if isinstance(data, bytearray):
            for i in range(len(data)):
                data[i] = 0


def _b64_unpadded(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii').rstrip("=")


@contextmanager
def credential_bytes(plaintext: Credential) -> Iterator[bytearray]:
    """Yield a credential as a mutable buffer that is zeroed afterwards."""
    if isinstance(plaintext, str):
        buf = bytearray(plaintext.encode('utf-8'))
    else:
        buf = bytearray(plaintext)
    try:
        yield buf
    finally:
        CredentialHasher.clear_bytes(buf)
