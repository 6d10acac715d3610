"""Content fingerprinting for hosting assets.

Fingerprints are lowercase hex SHA-256 digests, the same shape the remote
store reports for deployed assets.
"""

from pathlib import Path
import hashlib
import re

CHUNK_SIZE = 8192

EMPTY_DIGEST = hashlib.sha256(b"").hexdigest()

_HEX64 = re.compile(r"^[0-9a-f]{64}$")


def compute_file_digest(path: Path) -> str:
    """Compute SHA256 hash of file contents.

    Simple byte-for-byte hashing - any change invalidates the digest.

    Args:
        path: Path to file to hash

    Returns:
        64-character lowercase hex digest

    Raises:
        OSError: If the file cannot be opened or read
    """
    sha256 = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def compute_bytes_digest(data: bytes) -> str:
    """Compute SHA256 hash of in-memory content."""
    return hashlib.sha256(data).hexdigest()


def normalize_fingerprint(value: str) -> str:
    """Normalize a fingerprint to bare lowercase hex.

    Accepts an optional ``sha256:`` scheme prefix.

    Raises:
        ValueError: If the value is not a 64-character hex digest
    """
    fingerprint = value.strip().lower()
    if fingerprint.startswith("sha256:"):
        fingerprint = fingerprint.split(":", 1)[1]
    if not _HEX64.fullmatch(fingerprint):
        raise ValueError(f"Invalid sha256 hex (must be 64 hex chars): {value!r}")
    return fingerprint


__all__ = [
    "CHUNK_SIZE",
    "EMPTY_DIGEST",
    "compute_file_digest",
    "compute_bytes_digest",
    "normalize_fingerprint",
]
