"""
Local file storage with signed, expiring download links.

Paths are relative keys such as ``{organization_id}/exports/{id}/{file}``;
signed URLs point at the service's download route and carry an HMAC of the
key and expiry.
"""
import hashlib
import hmac
import logging
import time
from pathlib import Path
from urllib.parse import urlencode

from tender_engine.errors import StorageError

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Stores files under a base directory."""

    def __init__(self, base_dir: str | Path, secret_key: str, download_path: str = "/api/exports/download"):
        self.base_dir = Path(base_dir).resolve()
        self.secret_key = secret_key.encode("utf-8")
        self.download_path = download_path

    def resolve(self, path: str) -> Path:
        """Absolute location for a key; rejects keys escaping the base directory."""
        target = (self.base_dir / path).resolve()
        if self.base_dir not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target

    def save(self, path: str, data: bytes) -> str:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise StorageError(f"Failed to store file: {path}") from e
        logger.info("Stored %s (%s bytes)", path, len(data))
        return path

    def read(self, path: str) -> bytes:
        try:
            return self.resolve(path).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read file: {path}") from e

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def delete(self, path: str) -> None:
        target = self.resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete file: {path}") from e

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self.secret_key, message, hashlib.sha256).hexdigest()

    def create_signed_url(self, path: str, expires_in: int) -> str:
        expires = int(time.time()) + expires_in
        query = urlencode({"path": path, "expires": expires, "signature": self._signature(path, expires)})
        return f"{self.download_path}?{query}"

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)
