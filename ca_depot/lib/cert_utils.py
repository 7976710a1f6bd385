"""Certificate utility functions for PEM handling, CA material loading, and metadata."""

import re

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes

from .errors import CertLoadError, KeyLoadError
from .models import CertificateMetadata

CERTIFICATE_PEM_TYPE = "CERTIFICATE"
RSA_PRIVATE_KEY_PEM_TYPE = "RSA PRIVATE KEY"

_PEM_BEGIN = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")
_PEM_ENCRYPTED = re.compile(rb"^Proc-Type:\s*4,\s*ENCRYPTED", re.MULTILINE)


def generate_private_key(key_size: int = 4096) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def pem_block_type(pem_data: bytes) -> str | None:
    """Return the type label of the first PEM block, or None if there is none."""
    match = _PEM_BEGIN.search(pem_data)
    if match is None:
        return None
    return match.group(1).decode("ascii")


def is_encrypted_pem(pem_data: bytes) -> bool:
    """Return True if the PEM block carries legacy encryption headers."""
    return _PEM_ENCRYPTED.search(pem_data) is not None


def serialize_ca_key(key: RSAPrivateKey, password: bytes = b"") -> bytes:
    """Serialize CA key as an "RSA PRIVATE KEY" PEM block.

    The block is encrypted under PEM encryption headers when a password is given.
    """
    encryption: serialization.KeySerializationEncryption
    if password:
        encryption = serialization.BestAvailableEncryption(password)
    else:
        encryption = serialization.NoEncryption()
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=encryption,
    )


def load_ca_key(pem_data: bytes, password: bytes = b"") -> RSAPrivateKey:
    """Load CA private key from an "RSA PRIVATE KEY" PEM block.

    The password is applied only when the block is encrypted.

    Raises:
        KeyLoadError: If the block is missing, of another type, not RSA,
            or cannot be decrypted with the password
    """
    block_type = pem_block_type(pem_data)
    if block_type is None:
        raise KeyLoadError("CA key: PEM decode failed")
    if block_type != RSA_PRIVATE_KEY_PEM_TYPE:
        raise KeyLoadError(f"CA key: unexpected PEM block type {block_type!r}")

    encrypted = is_encrypted_pem(pem_data)
    if encrypted and not password:
        raise KeyLoadError("CA key is encrypted but no password was supplied")

    try:
        key = serialization.load_pem_private_key(
            pem_data, password=password if encrypted else None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        # Exception text from the loader never contains key bytes
        raise KeyLoadError(f"CA key could not be loaded: {e}") from e

    if not isinstance(key, RSAPrivateKey):
        raise KeyLoadError("CA key must be an RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def load_ca_certificate(pem_data: bytes) -> x509.Certificate:
    """Load CA certificate from a "CERTIFICATE" PEM block.

    Raises:
        CertLoadError: If the block is missing, of another type, or malformed
    """
    block_type = pem_block_type(pem_data)
    if block_type is None:
        raise CertLoadError("CA certificate: PEM decode failed")
    if block_type != CERTIFICATE_PEM_TYPE:
        raise CertLoadError(f"CA certificate: unexpected PEM block type {block_type!r}")
    try:
        return deserialize_certificate(pem_data)
    except ValueError as e:
        raise CertLoadError(f"CA certificate could not be parsed: {e}") from e


def subject_key_id(public_key: CertificatePublicKeyTypes) -> bytes:
    """Derive subject key identifier from a public key (RFC 5280 method 1)."""
    return x509.SubjectKeyIdentifier.from_public_key(public_key).digest


def get_common_name(name: x509.Name) -> str:
    """Return the first common name in name, or empty string."""
    attributes = name.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def certificate_name(cert: x509.Certificate) -> str:
    """Return display name for cert: its CN, or hex of its signature if CN is empty."""
    common_name = get_common_name(cert.subject)
    if common_name:
        return common_name
    return cert.signature.hex()


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def extract_certificate_metadata(cert: x509.Certificate) -> CertificateMetadata:
    """Extract descriptive certificate fields for the distribution payload.

    Args:
        cert: X.509 certificate to describe

    Returns:
        CertificateMetadata with serialNumber, subject, issuer and validity window
    """
    return CertificateMetadata(
        serialNumber=get_certificate_serial_hex(cert),
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        notBefore=cert.not_valid_before_utc.isoformat(),
        notAfter=cert.not_valid_after_utc.isoformat(),
    )


def serialize_csr(csr: x509.CertificateSigningRequest) -> bytes:
    """Serialize CSR to PEM format."""
    return csr.public_bytes(serialization.Encoding.PEM)


def deserialize_csr(pem_data: bytes) -> x509.CertificateSigningRequest:
    """Deserialize CSR from PEM bytes."""
    return x509.load_pem_x509_csr(pem_data)
