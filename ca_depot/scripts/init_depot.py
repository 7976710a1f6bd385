#!/usr/bin/env python3
"""Initialize a file depot with a self-signed CA certificate and encrypted key."""

import argparse
import os
import sys
from pathlib import Path

from ca_depot.lib.cert_utils import generate_private_key, get_certificate_serial_hex
from ca_depot.lib.certificate_builder import CertificateBuilder
from ca_depot.lib.config import CAConfig, DistinguishedName
from ca_depot.lib.file_depot import CA_CERT_FILE, CA_KEY_FILE, FileDepot
from ca_depot.lib.logging_config import LOGGER
from ca_depot.lib.models import InitResult


def init_depot(
    depot_dir: Path,
    common_name: str,
    config: CAConfig,
    password: bytes = b"",
    force: bool = False,
) -> InitResult:
    """Create CA key + self-signed certificate and store them in depot_dir.

    Args:
        depot_dir: Depot directory
        common_name: CN of the CA certificate
        config: CA configuration with DN template, key size and validity
        password: Passphrase encrypting the CA key (empty = unencrypted)
        force: Overwrite existing CA material

    Returns:
        InitResult with file paths and CA serial number

    Raises:
        FileExistsError: If the depot already holds a CA and force is False
    """
    depot = FileDepot(depot_dir)
    if not force and (depot.path(CA_CERT_FILE).exists() or depot.path(CA_KEY_FILE).exists()):
        raise FileExistsError(f"depot already initialized: {depot_dir}")

    key = generate_private_key(config.key_size)
    cert = CertificateBuilder.build_self_signed_ca(
        subject_dn=DistinguishedName.from_config(config, common_name),
        private_key=key,
        validity_years=config.validity_years,
    )
    depot.store_ca(cert, key, password)

    return InitResult(
        cert_path=depot.path(CA_CERT_FILE),
        key_path=depot.path(CA_KEY_FILE),
        serial_number=get_certificate_serial_hex(cert),
    )


def main(argv: list[str] | None = None) -> int:
    """Initialize depot directory.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Initialize CA depot")
    parser.add_argument("--depot-dir", type=Path, required=True, help="Depot directory")
    parser.add_argument("--common-name", required=True, help="CN of the CA certificate")
    parser.add_argument(
        "--ca-pass-env",
        default="CA_PASS",
        help="Environment variable holding the CA key passphrase (default: CA_PASS)",
    )
    parser.add_argument("--validity-years", type=int, default=10, help="CA validity (default: 10)")
    parser.add_argument("--key-size", type=int, default=4096, help="RSA key size (default: 4096)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing CA")
    args = parser.parse_args(argv)

    try:
        config = CAConfig(validity_years=args.validity_years, key_size=args.key_size)
        password = os.environ.get(args.ca_pass_env, "").encode("utf-8")
        if not password:
            LOGGER.warning("%s not set, CA key will be stored unencrypted", args.ca_pass_env)

        LOGGER.info("Initializing depot: %s", args.depot_dir)
        result = init_depot(args.depot_dir, args.common_name, config, password, args.force)

        LOGGER.info("CA created:")
        LOGGER.info("  Cert: %s", result.cert_path)
        LOGGER.info("  Key: %s", result.key_path)
        LOGGER.info("  Serial: %s", result.serial_number)
        return 0

    except FileExistsError as e:
        LOGGER.error("%s (use --force to overwrite)", e)
        return 1
    except Exception as e:
        LOGGER.error("Depot initialization failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
