"""Test fixtures for ca_depot tests."""

import ipaddress
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509 import oid

from ca_depot.lib.cert_utils import generate_private_key
from ca_depot.lib.certificate_builder import CertificateBuilder
from ca_depot.lib.config import DistinguishedName, SignerConfig
from ca_depot.lib.file_depot import FileDepot
from ca_depot.lib.memory_depot import MemoryDepot
from ca_depot.lib.models import SigningRequest

CA_PASS = "test-ca-pass"


@pytest.fixture(scope="session")
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the CA (2048 bits, faster for tests)."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_dn() -> DistinguishedName:
    """Return test CA distinguished name."""
    return DistinguishedName(
        country="JP",
        state="Tokyo",
        locality="Tokyo",
        organization="Test Org",
        organizational_unit="Test Unit",
        common_name="Test Issuing CA",
    )


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey, ca_dn: DistinguishedName) -> x509.Certificate:
    """Generate self-signed CA certificate."""
    return CertificateBuilder.build_self_signed_ca(
        subject_dn=ca_dn,
        private_key=ca_key,
        validity_years=1,
    )


@pytest.fixture(scope="session")
def client_key() -> RSAPrivateKey:
    """Generate RSA private key for client requests."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def client_csr(client_key: RSAPrivateKey) -> x509.CertificateSigningRequest:
    """Generate client CSR for CN=client1.example.com without SANs."""
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(
            x509.Name([x509.NameAttribute(oid.NameOID.COMMON_NAME, "client1.example.com")])
        )
        .sign(client_key, hashes.SHA256())
    )


@pytest.fixture
def client_csr_with_sans(client_key: RSAPrivateKey) -> x509.CertificateSigningRequest:
    """Generate client CSR carrying DNS, email, IP and URI SANs."""
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(
            x509.Name(
                [
                    x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, "Test Org"),
                    x509.NameAttribute(oid.NameOID.COMMON_NAME, "device-042"),
                ]
            )
        )
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName("device-042.example.com"),
                    x509.RFC822Name("ops@example.com"),
                    x509.IPAddress(ipaddress.IPv4Address("10.0.0.42")),
                    x509.UniformResourceIdentifier("urn:device:042"),
                ]
            ),
            critical=False,
        )
        .sign(client_key, hashes.SHA384())
    )


@pytest.fixture
def signing_request(client_csr: x509.CertificateSigningRequest) -> SigningRequest:
    """Return pre-parsed request for CN=client1.example.com."""
    return SigningRequest.from_csr(client_csr)


@pytest.fixture
def anonymous_request(client_key: RSAPrivateKey) -> SigningRequest:
    """Return request with an empty subject."""
    return SigningRequest(subject=x509.Name([]), public_key=client_key.public_key())


@pytest.fixture
def ca_pass() -> bytes:
    """Return the test CA key passphrase."""
    return CA_PASS.encode()


@pytest.fixture
def signer_config() -> SignerConfig:
    """Return signer config matching the test CA passphrase."""
    return SignerConfig(ca_pass=CA_PASS, allow_renewal_days=14, validity_days=30)


@pytest.fixture
def memory_depot(ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> MemoryDepot:
    """Return in-memory depot guarded by CA_PASS."""
    return MemoryDepot(ca_cert, ca_key, password=CA_PASS.encode())


@pytest.fixture
def depot_dir(tmp_path: Path, ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> Path:
    """Write encrypted CA material to a depot directory and return it.

    Creates:
        {tmp}/depot/ca.pem
        {tmp}/depot/ca.key
    """
    path = tmp_path / "depot"
    FileDepot(path).store_ca(ca_cert, ca_key, CA_PASS.encode())
    return path


@pytest.fixture
def file_depot(depot_dir: Path) -> FileDepot:
    """Return file depot over depot_dir without a distribution client."""
    return FileDepot(depot_dir)
