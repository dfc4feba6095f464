"""Request signing for the LiblibAI open API.

Every authenticated call carries ``AccessKey``, ``Signature``, ``Timestamp`` and
``SignatureNonce`` query parameters. The signature is an HMAC-SHA1 over
``<path>&<timestamp>&<nonce>`` keyed by the secret, encoded as URL-safe base64
without padding. Signatures must be generated fresh for every request.
"""

import base64
import hashlib
import hmac
import secrets
import string
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

NONCE_ALPHABET = string.ascii_letters + string.digits
NONCE_LENGTH = 16


@dataclass(frozen=True)
class Credentials:
    access_key: str
    secret: str

    def __repr__(self) -> str:
        # keep the secret out of logs and tracebacks
        return f"Credentials(access_key={self.access_key!r}, secret='***')"


@dataclass(frozen=True)
class SignedRequest:
    path: str
    access_key: str
    signature: str
    timestamp: int
    nonce: str

    def params(self) -> Dict[str, str]:
        return {
            "AccessKey": self.access_key,
            "Signature": self.signature,
            "Timestamp": str(self.timestamp),
            "SignatureNonce": self.nonce,
        }

    def query_string(self) -> str:
        # signature and nonce only use [A-Za-z0-9_-], nothing needs escaping
        return "&".join(f"{name}={value}" for name, value in self.params().items())


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def compute_signature(secret: str, path: str, timestamp: int, nonce: str) -> str:
    message = f"{path}&{timestamp}&{nonce}"
    digest = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha1).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def sign(
    path: str,
    credentials: Credentials,
    *,
    clock: Optional[Callable[[], int]] = None,
    nonce_factory: Optional[Callable[[], str]] = None,
) -> SignedRequest:
    """Sign ``path`` for a single request.

    ``clock`` (epoch milliseconds) and ``nonce_factory`` are only meant to be
    overridden in tests.
    """
    timestamp = (clock or _now_ms)()
    nonce = (nonce_factory or generate_nonce)()
    return SignedRequest(
        path=path,
        access_key=credentials.access_key,
        signature=compute_signature(credentials.secret, path, timestamp, nonce),
        timestamp=timestamp,
        nonce=nonce,
    )
