import base64
import binascii
import hashlib
import json
import logging
import os
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    decoded = base64.urlsafe_b64decode((value + padding).encode("ascii"))
    # Only the canonical encoding is accepted, so no two tokens decode alike
    if _b64url_encode(decoded) != value:
        raise ValueError("Non-canonical base64url segment")
    return decoded


def derive_key(seed: str) -> bytes:
    """Derive a 256-bit AES key from a configured secret."""
    return hashlib.sha256(seed.encode("utf-8")).digest()


class CookieCodec:
    """Authenticated encryption of small JSON payloads for cookie storage.

    Tokens have the form ``nonce.tag.ciphertext``, each part base64url
    encoded without padding. Decryption never raises: any malformed,
    truncated or tampered token decodes to ``None``.
    """

    def __init__(self, seed: str):
        self._aesgcm = AESGCM(derive_key(seed))

    def encrypt(self, payload: Any) -> str:
        nonce = os.urandom(NONCE_SIZE)
        plaintext = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        sealed = self._aesgcm.encrypt(nonce, plaintext, None)
        # AESGCM appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return ".".join(
            [_b64url_encode(nonce), _b64url_encode(tag), _b64url_encode(ciphertext)]
        )

    def decrypt(self, token: Optional[str]) -> Optional[Any]:
        if not token or not isinstance(token, str):
            return None

        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            return None

        try:
            nonce, tag, ciphertext = (_b64url_decode(part) for part in parts)
        except (binascii.Error, ValueError):
            return None

        if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
            return None

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            logger.info("Rejected cookie with invalid authentication tag")
            return None

        try:
            return json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return None
