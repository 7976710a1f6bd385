"""Abstract certificate depot.

A depot has custody of the CA certificate and key, allocates serial
numbers, and reports issued certificates to the distribution authority.
The :class:`~ca_depot.lib.signer.Signer` depends only on this contract.

Concrete depots: :class:`~ca_depot.lib.file_depot.FileDepot`,
:class:`~ca_depot.lib.memory_depot.MemoryDepot` and
:class:`~ca_depot.lib.aws_depot.AwsDepot`.
"""

import abc
import re
import secrets

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .errors import SerialFormatError

# First serial of a fresh store is drawn from [1, 2^130)
RANDOM_SERIAL_BITS = 130

_HEX_SERIAL = re.compile(r"[0-9a-fA-F]+")


def random_serial() -> int:
    """Return a cryptographically random positive serial below 2^130."""
    return secrets.randbelow(2**RANDOM_SERIAL_BITS - 1) + 1


def format_serial(serial: int) -> str:
    """Encode serial as lowercase hex without prefix."""
    return f"{serial:x}"


def parse_serial(data: str) -> int:
    """Decode a stored hex serial, ignoring a trailing line break.

    Raises:
        SerialFormatError: If data is not a hexadecimal integer
    """
    value = data.rstrip("\r\n")
    if not _HEX_SERIAL.fullmatch(value):
        raise SerialFormatError(f"could not convert {value!r} to serial number")
    return int(value, 16)


class Depot(abc.ABC):
    """Storage and distribution contract used by the Signer."""

    @abc.abstractmethod
    def ca(self, password: bytes) -> tuple[list[x509.Certificate], RSAPrivateKey]:
        """Load the CA chain and decrypt the CA key.

        Args:
            password: Passphrase for an encrypted CA key (may be empty)

        Returns:
            Tuple of (certificate chain, private key); chain[0] is the issuer

        Raises:
            KeyLoadError: If the key is absent, malformed or the password is wrong
            CertLoadError: If the certificate is absent or malformed
        """

    @abc.abstractmethod
    def serial(self) -> int:
        """Allocate a serial number never returned before by this store.

        The serial is durably recorded before it is returned.

        Raises:
            SerialIOError: If serial state cannot be read or written
            SerialFormatError: If stored serial state is corrupt
        """

    @abc.abstractmethod
    def distribute(self, name: str, allow_renewal_days: int, cert: x509.Certificate) -> bool:
        """Report an issued certificate to the distribution authority.

        The authority decides whether an existing certificate for name is
        superseded (its remaining validity is below allow_renewal_days) or
        the new one is premature.

        Returns:
            True if the authority accepted the certificate

        Raises:
            DistributionError: If the authority rejected it or was unreachable
        """
