import base64
import binascii
import hashlib
import logging
import os
from datetime import datetime
from typing import Tuple

from payroll_api.common.errors import StorageError, ValidationError

log = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """
    Split ``data:<mime>;base64,<payload>`` into (mime, bytes).
    Raises ValidationError if it is not a base64 data URI or does not decode.
    """
    if not data_uri or not isinstance(data_uri, str) or "," not in data_uri:
        raise ValidationError("signature_data must be a base64 data URI")
    header, payload = data_uri.split(",", 1)
    if not header.startswith("data:") or ";base64" not in header:
        raise ValidationError("signature_data must be a base64 data URI")
    mime = header[len("data:"):].split(";", 1)[0].strip().lower() or "image/png"
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("signature_data payload is not valid base64") from None
    if not raw:
        raise ValidationError("signature_data payload is empty")
    return mime, raw


class SignatureStore:
    """Persists signature images under ``<root>/signatures`` and hands back a URL path."""

    SUBDIR = "signatures"
    URL_PREFIX = "/uploads/signatures"

    def __init__(self, root: str):
        self.root = root

    @property
    def directory(self) -> str:
        return os.path.join(self.root, self.SUBDIR)

    @staticmethod
    def signature_hash(data_uri: str, signed_at: datetime) -> str:
        return hashlib.sha256(f"{data_uri}{signed_at.isoformat()}".encode("utf-8")).hexdigest()

    def save(self, data_uri: str, signed_at: datetime) -> Tuple[str, str]:
        """Decode and store the image. Returns (signature_hash, url_path)."""
        mime, raw = decode_data_uri(data_uri)
        digest = self.signature_hash(data_uri, signed_at)
        filename = f"{digest}{_EXTENSIONS.get(mime, '.png')}"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(os.path.join(self.directory, filename), "wb") as fh:
                fh.write(raw)
        except OSError as e:
            log.error("Failed to write signature %s: %s", filename, e)
            raise StorageError("Failed to save signature image") from e
        return digest, f"{self.URL_PREFIX}/{filename}"

    def discard(self, url_path: str) -> None:
        """Remove an artifact whose database row was never committed."""
        filename = os.path.basename(url_path or "")
        if not filename:
            return
        try:
            os.remove(os.path.join(self.directory, filename))
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("Could not remove orphaned signature %s: %s", filename, e)
