"""Trust issuer backed by an in-process certificate authority.

Each registered device receives an EC P-256 key pair and an X.509
client-authentication certificate signed by the CA. Key generation and
signing are CPU-bound, so they run in a worker thread.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from orchestrator.application.interfaces import TrustIssuer
from orchestrator.domain.entities import DeviceCredential
from orchestrator.domain.exceptions import TrustIssuerError

logger = logging.getLogger(__name__)

_ORGANIZATION = "Smart Bin Devices"


class LocalCATrustIssuer(TrustIssuer):
    """Issues device certificates from a CA key held in memory.

    Without an explicit CA key and certificate a self-signed CA is generated
    on construction, which suits development and tests.
    """

    def __init__(
        self,
        common_name: str = "Smart Bin Device CA",
        validity_days: int = 365,
        ca_key: ec.EllipticCurvePrivateKey | None = None,
        ca_certificate: x509.Certificate | None = None,
    ):
        if (ca_key is None) != (ca_certificate is None):
            raise ValueError("ca_key and ca_certificate must be given together")
        self._validity = timedelta(days=validity_days)
        if ca_key is None:
            ca_key, ca_certificate = self._create_ca(common_name)
        self._ca_key = ca_key
        self._ca_certificate = ca_certificate

    @property
    def ca_certificate(self) -> x509.Certificate:
        return self._ca_certificate

    @property
    def ca_certificate_pem(self) -> str:
        return self._ca_certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")

    async def issue_identity(self, device_id: str) -> DeviceCredential:
        try:
            return await asyncio.to_thread(self._issue, device_id)
        except ValueError as exc:
            raise TrustIssuerError(f"cannot issue certificate for '{device_id}': {exc}") from exc

    def _issue(self, device_id: str) -> DeviceCredential:
        key = ec.generate_private_key(ec.SECP256R1())
        now = datetime.now(timezone.utc)
        expires_at = now + self._validity
        subject = x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, device_id),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, _ORGANIZATION),
        ])
        certificate = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(self._ca_certificate.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(expires_at)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False)
            .add_extension(
                x509.SubjectAlternativeName([x509.UniformResourceIdentifier(f"urn:smart-bin:device:{device_id}")]),
                critical=False,
            )
            .sign(self._ca_key, hashes.SHA256())
        )
        fingerprint = certificate.fingerprint(hashes.SHA256()).hex()
        logger.debug("Issued certificate for %s (fingerprint %s)", device_id, fingerprint[:16])
        return DeviceCredential(
            device_id=device_id,
            certificate_pem=certificate.public_bytes(serialization.Encoding.PEM).decode("ascii"),
            fingerprint=fingerprint,
            expires_at=expires_at,
            private_key_pem=key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            ).decode("ascii"),
        )

    @staticmethod
    def _create_ca(common_name: str) -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
        key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, _ORGANIZATION),
        ])
        now = datetime.now(timezone.utc)
        certificate = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + timedelta(days=3650))
            .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .sign(key, hashes.SHA256())
        )
        logger.info("Generated in-memory device CA '%s'", common_name)
        return key, certificate
