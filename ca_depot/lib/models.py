"""Request, metadata and payload models for certificate issuance."""

import ipaddress
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


@dataclass(frozen=True)
class SigningRequest:
    """Pre-parsed signing request.

    Proof-of-possession of the public key is checked by whoever parses the
    request, not here.
    """

    subject: x509.Name
    public_key: CertificatePublicKeyTypes
    dns_names: tuple[str, ...] = field(default_factory=tuple)
    email_addresses: tuple[str, ...] = field(default_factory=tuple)
    ip_addresses: tuple[IPAddress, ...] = field(default_factory=tuple)
    uris: tuple[str, ...] = field(default_factory=tuple)
    signature_hash: hashes.HashAlgorithm | None = None

    @property
    def has_subject_alternative_names(self) -> bool:
        return bool(self.dns_names or self.email_addresses or self.ip_addresses or self.uris)

    def subject_alternative_names(self) -> list[x509.GeneralName]:
        """Return SAN entries in DNS, email, IP, URI order."""
        names: list[x509.GeneralName] = []
        names.extend(x509.DNSName(name) for name in self.dns_names)
        names.extend(x509.RFC822Name(email) for email in self.email_addresses)
        names.extend(x509.IPAddress(ip) for ip in self.ip_addresses)
        names.extend(x509.UniformResourceIdentifier(uri) for uri in self.uris)
        return names

    @classmethod
    def from_csr(cls, csr: x509.CertificateSigningRequest) -> "SigningRequest":
        """Build a request from a parsed PKCS#10 CSR.

        Args:
            csr: Certificate signing request

        Returns:
            SigningRequest with subject, public key, SANs and hash algorithm from the CSR
        """
        try:
            san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            san = x509.SubjectAlternativeName([])

        return cls(
            subject=csr.subject,
            public_key=csr.public_key(),
            dns_names=tuple(san.get_values_for_type(x509.DNSName)),
            email_addresses=tuple(san.get_values_for_type(x509.RFC822Name)),
            ip_addresses=tuple(san.get_values_for_type(x509.IPAddress)),
            uris=tuple(san.get_values_for_type(x509.UniformResourceIdentifier)),
            signature_hash=csr.signature_hash_algorithm,
        )


class CertificateMetadata(TypedDict):
    """Descriptive fields of an issued certificate."""

    serialNumber: str
    subject: str
    issuer: str
    notBefore: str
    notAfter: str


class DistributionPayload(CertificateMetadata):
    """JSON body sent to the distribution authority."""

    name: str
    allowTime: int
    pem: str


@dataclass
class InitResult:
    """Result from depot initialization.

    Contains file paths and serial number of the new CA certificate.
    """

    cert_path: Path
    key_path: Path
    serial_number: str
