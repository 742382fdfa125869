"""Time-bounded permission to upload one object to storage."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class UploadGrant:
    url: str
    storage_key: str
    expires_at: datetime
    method: str = "PUT"
    headers: dict[str, str] = field(default_factory=dict)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at
