"""Audio fingerprinting. Only the digest is kept; the bytes are discarded."""

import hashlib
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class AudioUpload:
    """An uploaded audio blob and its original filename."""

    file_name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class AudioFingerprint:
    file_name: str
    sha256: str


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 digest."""
    return hashlib.sha256(data).hexdigest()


def fingerprint_uploads(uploads: Iterable[AudioUpload]) -> list[AudioFingerprint]:
    """Hash every non-empty upload, preserving upload order."""
    return [
        AudioFingerprint(file_name=upload.file_name, sha256=sha256_hex(upload.data))
        for upload in uploads
        if upload.size > 0
    ]
