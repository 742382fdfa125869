"""Identity credential issued to a device at registration."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class DeviceCredential:
    """Certificate-like artifact binding a key pair to a device id.

    Only ``certificate_pem`` and ``fingerprint`` are stored; the private key
    is handed to the caller once and never persisted.
    """

    device_id: str
    certificate_pem: str
    fingerprint: str
    expires_at: datetime
    private_key_pem: str = field(default="", repr=False)
