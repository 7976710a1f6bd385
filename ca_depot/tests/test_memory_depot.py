"""Tests for MemoryDepot."""

import threading
from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ca_depot.lib.errors import DistributionError, KeyLoadError
from ca_depot.lib.memory_depot import MemoryDepot


class TestMemoryDepot:
    """Tests for MemoryDepot."""

    def test_ca_with_password(
        self, memory_depot: MemoryDepot, ca_cert: x509.Certificate, ca_pass: bytes
    ) -> None:
        """ca() returns the chain when the password matches."""
        chain, _ = memory_depot.ca(ca_pass)
        assert chain == [ca_cert]

    def test_ca_wrong_password(self, memory_depot: MemoryDepot) -> None:
        """Wrong password is a KeyLoadError."""
        with pytest.raises(KeyLoadError):
            memory_depot.ca(b"wrong")

    def test_serial_starts_at_first_serial(
        self, ca_cert: x509.Certificate, ca_key: RSAPrivateKey
    ) -> None:
        """Explicit first_serial is returned first, then incremented."""
        depot = MemoryDepot(ca_cert, ca_key, first_serial=100)
        assert [depot.serial() for _ in range(3)] == [100, 101, 102]
        assert depot.issued_serials == [100, 101, 102]

    def test_random_first_serial(self, memory_depot: MemoryDepot) -> None:
        """Without first_serial, the first serial is random and positive."""
        assert 0 < memory_depot.serial() < 2**130

    def test_concurrent_serials_unique(self, memory_depot: MemoryDepot) -> None:
        """Concurrent allocation never repeats a serial."""
        serials: list[int] = []
        lock = threading.Lock()

        def allocate() -> None:
            for _ in range(50):
                serial = memory_depot.serial()
                with lock:
                    serials.append(serial)

        threads = [threading.Thread(target=allocate) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(serials)) == 200

    def test_distribute_records_call(
        self, memory_depot: MemoryDepot, ca_cert: x509.Certificate
    ) -> None:
        """Without a distributor, calls are recorded and accepted."""
        assert memory_depot.distribute("client1", 14, ca_cert) is True
        assert memory_depot.distributed[0].name == "client1"
        assert memory_depot.distributed[0].allow_renewal_days == 14
        assert memory_depot.distributed[0].cert == ca_cert

    def test_distribute_reject(self, memory_depot: MemoryDepot, ca_cert: x509.Certificate) -> None:
        """reject_with makes distribute raise with that body."""
        memory_depot.reject_with = "renewal window not met"
        with pytest.raises(DistributionError, match="renewal window not met") as exc_info:
            memory_depot.distribute("client1", 14, ca_cert)
        assert exc_info.value.body == "renewal window not met"
        assert memory_depot.distributed == []

    def test_distribute_delegates(
        self, ca_cert: x509.Certificate, ca_key: RSAPrivateKey
    ) -> None:
        """Configured distributor receives the call."""
        distributor = MagicMock()
        distributor.distribute.return_value = True
        depot = MemoryDepot(ca_cert, ca_key, distributor=distributor)

        assert depot.distribute("client1", 7, ca_cert) is True
        distributor.distribute.assert_called_once_with("client1", 7, ca_cert)
