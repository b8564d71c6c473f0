"""
Content integrity identifiers.

An :class:`Integrity` is an algorithm tag plus raw digest bytes. It is used as
the key for content-addressed blobs and as the checksum a :class:`Gem` carries
for its archive, so the same value can be re-checked against stored bytes at
any time.

The canonical string form is Subresource-Integrity style::

    sha256-<base64 digest>
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, model_serializer, model_validator

from gemmirror.domain.errors import IntegrityMismatch, InvalidIntegrityFormat

DEFAULT_ALGORITHM = "sha256"
SUPPORTED_ALGORITHMS = ("sha1", "sha256", "sha384", "sha512")


def _check_algorithm(algorithm: str) -> str:
    algorithm = algorithm.lower()
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise InvalidIntegrityFormat(f"Unsupported integrity algorithm: {algorithm!r}")
    return algorithm


def _check_digest(algorithm: str, digest: bytes) -> bytes:
    expected = hashlib.new(algorithm).digest_size
    if len(digest) != expected:
        raise InvalidIntegrityFormat(
            f"{algorithm} digest must be {expected} bytes, got {len(digest)}"
        )
    return digest


class Integrity(BaseModel):
    """Algorithm-tagged digest; equal iff algorithm and digest bytes match."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    digest: bytes

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        # Persisted manifests hold the canonical string form.
        if isinstance(value, str):
            parsed = cls.parse(value)
            return {"algorithm": parsed.algorithm, "digest": parsed.digest}
        if isinstance(value, dict) and "algorithm" in value and "digest" in value:
            algorithm = _check_algorithm(str(value["algorithm"]))
            return {"algorithm": algorithm, "digest": _check_digest(algorithm, value["digest"])}
        return value

    @model_serializer
    def _serialize(self) -> str:
        return str(self)

    def __str__(self) -> str:
        return f"{self.algorithm}-{base64.b64encode(self.digest).decode('ascii')}"

    def __repr__(self) -> str:
        return f"Integrity({str(self)!r})"

    @classmethod
    def compute(cls, data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> "Integrity":
        """Hash ``data`` with ``algorithm``."""
        algorithm = _check_algorithm(algorithm)
        return cls(algorithm=algorithm, digest=hashlib.new(algorithm, data).digest())

    @classmethod
    def parse(cls, text: str) -> "Integrity":
        """
        Parse the canonical ``<algorithm>-<base64>`` form.

        Raises:
            InvalidIntegrityFormat: if the algorithm is unknown, the base64 is
                malformed, or the digest has the wrong length.
        """
        algorithm, sep, encoded = text.strip().partition("-")
        if not sep or not encoded:
            raise InvalidIntegrityFormat(f"Malformed integrity string: {text!r}")
        algorithm = _check_algorithm(algorithm)
        try:
            digest = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidIntegrityFormat(f"Malformed integrity digest in {text!r}: {e}") from e
        return cls(algorithm=algorithm, digest=_check_digest(algorithm, digest))

    @classmethod
    def from_hex(cls, hex_digest: str, algorithm: str = DEFAULT_ALGORITHM) -> "Integrity":
        algorithm = _check_algorithm(algorithm)
        try:
            digest = bytes.fromhex(hex_digest)
        except ValueError as e:
            raise InvalidIntegrityFormat(f"Malformed hex digest {hex_digest!r}: {e}") from e
        return cls(algorithm=algorithm, digest=_check_digest(algorithm, digest))

    def to_hex(self) -> Tuple[str, str]:
        return self.algorithm, self.digest.hex()

    def matches(self, data: bytes) -> bool:
        return hashlib.new(self.algorithm, data).digest() == self.digest

    def verify(self, data: bytes) -> None:
        """
        Recompute the digest of ``data`` and compare.

        Raises:
            IntegrityMismatch: if the bytes hash to a different digest.
        """
        actual = Integrity.compute(data, self.algorithm)
        if actual != self:
            raise IntegrityMismatch(
                f"Integrity check failed: expected {self}, got {actual}",
                expected=self,
                actual=actual,
            )
