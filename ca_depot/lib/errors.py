"""Exceptions raised by depots, the signer and the distribution client."""


class ConfigError(ValueError):
    """Invalid or missing configuration."""


class DepotError(Exception):
    """Base class for issuance failures."""


class CALoadError(DepotError):
    """CA material is unavailable or malformed."""


class KeyLoadError(CALoadError):
    """CA private key is absent, malformed, not RSA, or the password is wrong."""


class CertLoadError(CALoadError):
    """CA certificate is absent or malformed."""


class SerialError(DepotError):
    """Serial store is unavailable or corrupt."""


class SerialIOError(SerialError):
    """Serial state could not be read or written."""


class SerialFormatError(SerialError):
    """Stored serial is not a hexadecimal integer."""


class SigningError(DepotError):
    """The signing primitive rejected the certificate template or CA key."""


class SignatureIntegrityError(SigningError):
    """A freshly signed certificate could not be parsed back."""


class DistributionError(DepotError):
    """The distribution authority rejected the certificate or was unreachable.

    Attributes:
        status: HTTP status returned by the authority, None on transport failure
        body: Response body returned by the authority (may be empty)
    """

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body
