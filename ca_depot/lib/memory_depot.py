"""In-memory depot for tests and embedding."""

import hmac
import threading
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .depot import Depot, random_serial
from .distribution import DistributionClient
from .errors import DistributionError, KeyLoadError


@dataclass(frozen=True)
class DistributedCertificate:
    """Distribution call recorded by MemoryDepot."""

    name: str
    allow_renewal_days: int
    cert: x509.Certificate


class MemoryDepot(Depot):
    """Depot keeping CA material and the serial counter in process memory.

    Without a distributor, distribute() records each call in ``distributed``
    and accepts it, unless ``reject_with`` is set.
    """

    def __init__(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        password: bytes = b"",
        first_serial: int | None = None,
        distributor: DistributionClient | None = None,
    ) -> None:
        self._chain = [ca_cert]
        self._key = ca_key
        self._password = password
        self._next_serial = random_serial() if first_serial is None else first_serial
        self._lock = threading.Lock()
        self.distributor = distributor
        self.distributed: list[DistributedCertificate] = []
        self.issued_serials: list[int] = []
        self.reject_with: str | None = None

    def ca(self, password: bytes) -> tuple[list[x509.Certificate], RSAPrivateKey]:
        if not hmac.compare_digest(password, self._password):
            raise KeyLoadError("CA key could not be loaded: incorrect password")
        return list(self._chain), self._key

    def serial(self) -> int:
        with self._lock:
            serial = self._next_serial
            self._next_serial += 1
            self.issued_serials.append(serial)
        return serial

    def distribute(self, name: str, allow_renewal_days: int, cert: x509.Certificate) -> bool:
        if self.distributor is not None:
            return self.distributor.distribute(name, allow_renewal_days, cert)
        if self.reject_with is not None:
            raise DistributionError(
                f"distribution rejected: {self.reject_with}", body=self.reject_with
            )
        with self._lock:
            self.distributed.append(DistributedCertificate(name, allow_renewal_days, cert))
        return True
