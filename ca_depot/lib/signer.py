"""Signer: issues client-authentication certificates from a Depot's CA."""

import logging
from datetime import datetime, timezone

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from .cert_utils import certificate_name, subject_key_id
from .certificate_builder import CertificateBuilder
from .config import SignerConfig
from .depot import Depot
from .errors import DistributionError, SignatureIntegrityError, SigningError
from .models import SigningRequest

logger = logging.getLogger(__name__)


class Signer:
    """Stateless issuance logic over a Depot.

    Each sign_csr call borrows a serial and the CA material from the depot
    and drops them when it returns. Calls are not locked; serial uniqueness
    is the depot's job.
    """

    def __init__(self, depot: Depot, config: SignerConfig | None = None) -> None:
        """Initialize signer.

        Args:
            depot: Depot providing CA material, serials and distribution
            config: CA passphrase, renewal window and validity (default: SignerConfig())
        """
        self._depot = depot
        self._config = config or SignerConfig()

    @property
    def config(self) -> SignerConfig:
        return self._config

    def sign_csr(self, request: SigningRequest) -> x509.Certificate:
        """Issue and distribute a client certificate for request.

        Args:
            request: Pre-parsed signing request

        Returns:
            Signed certificate, accepted by the distribution authority

        Raises:
            SigningError: If the public key is unsupported or the CA cannot sign
            SignatureIntegrityError: If the signed certificate does not parse back
            SerialIOError, SerialFormatError: From serial allocation
            KeyLoadError, CertLoadError: From CA loading
            DistributionError: If distribution failed or was rejected
        """
        try:
            key_id = subject_key_id(request.public_key)
        except (TypeError, ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(f"unsupported request public key: {e}") from e

        serial = self._depot.serial()
        logger.debug("Serial %x allocated", serial)

        template = CertificateBuilder.client_template(
            request=request,
            serial_number=serial,
            key_id=key_id,
            validity_days=self._config.validity_days,
            now=datetime.now(timezone.utc),
        )

        ca_chain, ca_key = self._depot.ca(self._config.ca_pass.encode("utf-8"))
        if not ca_chain:
            raise SigningError("depot returned an empty CA chain")

        try:
            signed = CertificateBuilder.build_client_certificate(
                template=template,
                issuer_cert=ca_chain[0],
                issuer_key=ca_key,
                signature_hash=request.signature_hash,
            )
        except (TypeError, ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(f"signing certificate {serial:x} failed: {e}") from e

        cert = _reparse(signed)
        name = certificate_name(cert)
        logger.info("Signed certificate %x for %s", serial, name)

        accepted = self._depot.distribute(name, self._config.allow_renewal_days, cert)
        if not accepted:
            raise DistributionError(f"distribution rejected certificate for {name}")

        logger.info("Certificate %x for %s distributed", serial, name)
        return cert


def _reparse(cert: x509.Certificate) -> x509.Certificate:
    """Round-trip a freshly signed certificate through DER.

    Raises:
        SignatureIntegrityError: If the signer produced undecodable output
    """
    try:
        der = cert.public_bytes(serialization.Encoding.DER)
        return x509.load_der_x509_certificate(der)
    except ValueError as e:
        raise SignatureIntegrityError(
            f"signed certificate {cert.serial_number:x} could not be parsed"
        ) from e
