"""File-backed depot: CA PEM files and a hex serial file in one directory."""

import fcntl
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import load_ca_certificate, load_ca_key, serialize_ca_key, serialize_certificate
from .depot import Depot, format_serial, parse_serial, random_serial
from .distribution import DistributionClient
from .errors import (
    CertLoadError,
    DistributionError,
    KeyLoadError,
    SerialFormatError,
    SerialIOError,
)

logger = logging.getLogger(__name__)

CA_CERT_FILE = "ca.pem"
CA_KEY_FILE = "ca.key"
SERIAL_FILE = "serial"
SERIAL_LOCK_FILE = "serial.lock"

# Serial file is owner read-only, no group/world access
SERIAL_PERM = 0o400
KEY_PERM = 0o400
DIR_PERM = 0o755


class FileDepot(Depot):
    """Depot persisting CA material and serial state as files under dir_path.

    Layout:
        {dir_path}/ca.pem       CA certificate, PEM "CERTIFICATE"
        {dir_path}/ca.key       CA key, PEM "RSA PRIVATE KEY", optionally encrypted
        {dir_path}/serial       last issued serial, lowercase hex + newline
        {dir_path}/serial.lock  flock target serializing serial allocation
    """

    def __init__(self, dir_path: Path, distributor: DistributionClient | None = None) -> None:
        """Initialize file depot.

        Args:
            dir_path: Depot directory
            distributor: Client used by distribute(); required only for distribution
        """
        self.dir_path = Path(dir_path)
        self.distributor = distributor
        self._serial_lock = threading.Lock()

    def path(self, name: str) -> Path:
        return self.dir_path / name

    def store_ca(self, cert: x509.Certificate, key: RSAPrivateKey, password: bytes = b"") -> None:
        """Write CA certificate and (optionally encrypted) key into the depot.

        Existing files are replaced.
        """
        self.dir_path.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
        self.path(CA_CERT_FILE).write_bytes(serialize_certificate(cert))

        key_path = self.path(CA_KEY_FILE)
        key_path.unlink(missing_ok=True)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, KEY_PERM)
        with os.fdopen(fd, "wb") as f:
            f.write(serialize_ca_key(key, password))

    def ca(self, password: bytes) -> tuple[list[x509.Certificate], RSAPrivateKey]:
        try:
            cert_pem = self.path(CA_CERT_FILE).read_bytes()
        except OSError as e:
            raise CertLoadError(f"CA certificate not readable: {self.path(CA_CERT_FILE)}") from e
        cert = load_ca_certificate(cert_pem)

        try:
            key_pem = self.path(CA_KEY_FILE).read_bytes()
        except OSError as e:
            raise KeyLoadError(f"CA key not readable: {self.path(CA_KEY_FILE)}") from e
        key = load_ca_key(key_pem, password)

        return [cert], key

    def serial(self) -> int:
        with self._serial_lock, self._locked():
            current = self._read_serial()
            serial = random_serial() if current is None else current + 1
            self._write_serial(serial)

        logger.debug("Allocated serial %x", serial)
        return serial

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold an exclusive flock on serial.lock across processes."""
        try:
            self.dir_path.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
            lock_file = open(self.path(SERIAL_LOCK_FILE), "a+")
        except OSError as e:
            raise SerialIOError(f"cannot open serial lock: {e}") from e

        with lock_file:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            except OSError as e:
                raise SerialIOError(f"cannot lock serial state: {e}") from e
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read_serial(self) -> int | None:
        """Return the stored serial, or None if no serial file exists yet."""
        serial_path = self.path(SERIAL_FILE)
        try:
            data = serial_path.read_text(encoding="ascii")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise SerialFormatError(f"serial file {serial_path} is not ASCII hex") from e
        except OSError as e:
            raise SerialIOError(f"cannot read serial file {serial_path}: {e}") from e
        return parse_serial(data)

    def _write_serial(self, serial: int) -> None:
        """Atomically replace the serial file.

        A fresh temp file is created exclusively, written, synced and renamed
        over the serial file, so readers never see a partial value.
        """
        serial_path = self.path(SERIAL_FILE)
        tmp_path = self.path(SERIAL_FILE + ".tmp")
        try:
            tmp_path.unlink(missing_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, SERIAL_PERM)
            try:
                with os.fdopen(fd, "w", encoding="ascii") as f:
                    f.write(format_serial(serial) + "\n")
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, serial_path)
            except OSError:
                tmp_path.unlink(missing_ok=True)
                raise
        except OSError as e:
            raise SerialIOError(f"cannot write serial file {serial_path}: {e}") from e

    def distribute(self, name: str, allow_renewal_days: int, cert: x509.Certificate) -> bool:
        if self.distributor is None:
            raise DistributionError("no distribution client configured")
        return self.distributor.distribute(name, allow_renewal_days, cert)
