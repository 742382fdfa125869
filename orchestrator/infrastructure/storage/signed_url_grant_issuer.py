"""Upload grant issuer producing HMAC-signed object-storage PUT URLs.

URL layout:
    <base_url>/<storage_key>?expires=<unix-ts>&signature=<hex>

The signature covers method, storage key, content type and expiry, so a
grant cannot be replayed for another object or after it expires.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from urllib.parse import quote, urlencode

from orchestrator.application.interfaces import UploadGrantIssuer
from orchestrator.domain.entities import UploadGrant
from orchestrator.domain.exceptions import UploadGrantError

logger = logging.getLogger(__name__)


class SignedUrlUploadGrantIssuer(UploadGrantIssuer):
    """Issues and verifies time-bounded, key-scoped upload URLs."""

    def __init__(self, base_url: str, signing_secret: str, content_type: str = "image/jpeg"):
        self._base_url = base_url.rstrip("/")
        self._secret = signing_secret
        self._content_type = content_type

    async def issue_put_grant(self, storage_key: str, ttl: timedelta) -> UploadGrant:
        if not self._secret:
            raise UploadGrantError("upload signing secret is not configured")
        if not storage_key or storage_key.startswith("/") or ".." in storage_key.split("/"):
            raise UploadGrantError(f"refusing to sign storage key '{storage_key}'")
        if ttl <= timedelta(0):
            raise UploadGrantError("upload grant ttl must be positive")

        expires_at = (datetime.now(timezone.utc) + ttl).replace(microsecond=0)
        expires = int(expires_at.timestamp())
        signature = self._sign(storage_key, expires)
        url = f"{self._base_url}/{quote(storage_key)}?{urlencode({'expires': expires, 'signature': signature})}"
        logger.debug("Issued upload grant for %s (expires %s)", storage_key, expires_at.isoformat())
        return UploadGrant(
            url=url,
            storage_key=storage_key,
            expires_at=expires_at,
            method="PUT",
            headers={"Content-Type": self._content_type},
        )

    def verify(self, storage_key: str, expires: int, signature: str, now: datetime | None = None) -> bool:
        """Check a presented signature for *storage_key* and that it has not expired."""
        now = now or datetime.now(timezone.utc)
        if now.timestamp() >= expires:
            return False
        expected = self._sign(storage_key, expires)
        return hmac.compare_digest(expected, signature)

    def _sign(self, storage_key: str, expires: int) -> str:
        string_to_sign = f"PUT\n{storage_key}\n{self._content_type}\n{expires}".encode("utf-8")
        return hmac.new(self._secret.encode("utf-8"), string_to_sign, sha256).hexdigest()
