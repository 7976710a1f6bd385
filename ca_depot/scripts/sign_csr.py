#!/usr/bin/env python3
"""Sign a CSR with a file depot's CA and report it to the distribution authority."""

import argparse
import os
import sys
from pathlib import Path

from ca_depot.lib.cert_utils import deserialize_csr, serialize_certificate
from ca_depot.lib.config import DistributionConfig, SignerConfig
from ca_depot.lib.distribution import DistributionClient
from ca_depot.lib.errors import ConfigError, DepotError
from ca_depot.lib.file_depot import FileDepot
from ca_depot.lib.logging_config import LOGGER
from ca_depot.lib.models import SigningRequest
from ca_depot.lib.signer import Signer


def main(argv: list[str] | None = None) -> int:
    """Sign CSR file and write the issued certificate.

    Distribution endpoint and token are read from URL_CERT and JWT_TOKEN.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Sign a client CSR")
    parser.add_argument("--depot-dir", type=Path, required=True, help="Depot directory")
    parser.add_argument("--csr", type=Path, required=True, help="PEM CSR to sign")
    parser.add_argument("--out", type=Path, required=True, help="Output path for PEM certificate")
    parser.add_argument(
        "--ca-pass-env",
        default="CA_PASS",
        help="Environment variable holding the CA key passphrase (default: CA_PASS)",
    )
    parser.add_argument(
        "--validity-days", type=int, default=365, help="Certificate validity (default: 365)"
    )
    parser.add_argument(
        "--allow-renewal-days",
        type=int,
        default=14,
        help="Renewal window reported to the authority (default: 14)",
    )
    args = parser.parse_args(argv)

    try:
        signer_config = SignerConfig(
            ca_pass=os.environ.get(args.ca_pass_env, ""),
            allow_renewal_days=args.allow_renewal_days,
            validity_days=args.validity_days,
        )
        distributor = DistributionClient(DistributionConfig.from_env())
        signer = Signer(FileDepot(args.depot_dir, distributor=distributor), signer_config)

        request = SigningRequest.from_csr(deserialize_csr(args.csr.read_bytes()))
        cert = signer.sign_csr(request)

        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_bytes(serialize_certificate(cert))
        LOGGER.info("Certificate written: %s (serial %x)", args.out, cert.serial_number)
        return 0

    except ConfigError as e:
        LOGGER.error("Invalid configuration: %s", e)
        return 1
    except DepotError as e:
        LOGGER.error("Issuance failed: %s", e)
        return 1
    except (OSError, ValueError) as e:
        LOGGER.error("CSR %s or output %s unusable: %s", args.csr, args.out, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
