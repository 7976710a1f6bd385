"""Certificate builder for X.509 certificate construction."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509 import oid

from .config import DistinguishedName
from .models import SigningRequest

# notBefore is backdated by this much to tolerate clients with slow clocks
CLOCK_SKEW = timedelta(seconds=600)


class CertificateBuilder:
    """Builds the self-signed CA certificate and client-authentication leaves."""

    @staticmethod
    def build_self_signed_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_years: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject
            private_key: RSA private key for signing
            validity_years: Certificate validity period in years

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_years * 365)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=0),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=False,
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
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
                critical=False,
            )
        )

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def client_template(
        request: SigningRequest,
        serial_number: int,
        key_id: bytes,
        validity_days: int,
        now: datetime | None = None,
    ) -> x509.CertificateBuilder:
        """Build the unsigned client-authentication template for request.

        The issuer name and authority key identifier are added by
        build_client_certificate once the CA is known.

        Args:
            request: Pre-parsed signing request
            serial_number: Serial allocated by the depot
            key_id: Subject key identifier derived from the request public key
            validity_days: Certificate validity period in days
            now: Issuance time (default: current UTC time)

        Returns:
            CertificateBuilder carrying subject, validity, key and extensions
        """
        issued_at = now or datetime.now(timezone.utc)

        builder = (
            x509.CertificateBuilder()
            .subject_name(request.subject)
            .public_key(request.public_key)
            .serial_number(serial_number)
            .not_valid_before(issued_at - CLOCK_SKEW)
            .not_valid_after(issued_at + timedelta(days=validity_days))
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([oid.ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .add_extension(
                x509.SubjectKeyIdentifier(key_id),
                critical=False,
            )
        )

        if request.has_subject_alternative_names:
            builder = builder.add_extension(
                x509.SubjectAlternativeName(request.subject_alternative_names()),
                critical=False,
            )

        return builder

    @staticmethod
    def build_client_certificate(
        template: x509.CertificateBuilder,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        signature_hash: hashes.HashAlgorithm | None = None,
    ) -> x509.Certificate:
        """Sign a client template with the issuing CA.

        Args:
            template: Builder returned by client_template
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            signature_hash: Hash requested by the client (default: SHA-256)

        Returns:
            X.509 end-entity certificate signed by the CA
        """
        try:
            ski = issuer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
            aki = x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)
        except x509.ExtensionNotFound:
            aki = x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key())

        builder = template.issuer_name(issuer_cert.subject).add_extension(aki, critical=False)
        return builder.sign(issuer_key, signature_hash or hashes.SHA256())
