"""Distribution client reporting issued certificates to the external authority."""

import json
import logging
import time
import urllib.error
import urllib.request

from cryptography import x509

from .cert_utils import extract_certificate_metadata, serialize_certificate
from .config import DistributionConfig
from .errors import DistributionError
from .models import DistributionPayload

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192


def build_distribution_payload(
    name: str, allow_renewal_days: int, cert: x509.Certificate
) -> DistributionPayload:
    """Build JSON body for the distribution authority.

    Args:
        name: Display name of the certificate holder
        allow_renewal_days: Renewal window in days
        cert: Issued certificate

    Returns:
        DistributionPayload with name, allowTime, pem and descriptive fields
    """
    metadata = extract_certificate_metadata(cert)
    return DistributionPayload(
        name=name,
        allowTime=allow_renewal_days,
        pem=serialize_certificate(cert).decode("ascii"),
        **metadata,
    )


def _read_body(response, deadline: float | None = None) -> str:
    """Read a response body in chunks.

    With a deadline, read errors propagate and TimeoutError is raised once
    time.monotonic() passes it. Without one (error bodies), a failed read
    ends the body.
    """
    if response is None:
        return ""
    chunks: list[bytes] = []
    while True:
        if deadline is not None and time.monotonic() > deadline:
            raise TimeoutError("distribution response exceeded the request timeout")
        try:
            chunk = response.read(READ_CHUNK_SIZE)
        except OSError:
            if deadline is not None:
                raise
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


class DistributionClient:
    """HTTP client for the distribution authority."""

    def __init__(self, config: DistributionConfig) -> None:
        """Initialize distribution client.

        Args:
            config: Endpoint URL, bearer token and timeout
        """
        self.config = config

    def _request(self, body: bytes) -> urllib.request.Request:
        headers = {
            "Content-Type": "application/json",
            "authorization": f"Bearer {self.config.token}",
        }
        return urllib.request.Request(self.config.url, data=body, headers=headers, method="POST")

    def distribute(self, name: str, allow_renewal_days: int, cert: x509.Certificate) -> bool:
        """POST the issued certificate to the authority.

        Args:
            name: Display name of the certificate holder
            allow_renewal_days: Renewal window in days
            cert: Issued certificate

        The urlopen timeout bounds each socket operation. The response body
        is additionally read against an overall deadline of config.timeout
        from the start of the request, so a trickling server cannot hold the
        call open indefinitely.

        Returns:
            True when the authority answers HTTP 200

        Raises:
            DistributionError: On any other status or on transport failure;
                the message carries the response body
        """
        payload = build_distribution_payload(name, allow_renewal_days, cert)
        req = self._request(json.dumps(payload).encode("utf-8"))
        deadline = time.monotonic() + self.config.timeout

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as response:
                status = response.status
                body = _read_body(response, deadline)
        except urllib.error.HTTPError as e:
            body = _read_body(e)
            logger.warning("Distribution of %s rejected with HTTP %d", name, e.code)
            raise DistributionError(
                f"distribution rejected (HTTP {e.code}): {body}", status=e.code, body=body
            ) from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            logger.error("Distribution of %s failed: %s", name, e)
            raise DistributionError(f"distribution request failed: {e}") from e

        if status != 200:
            logger.warning("Distribution of %s answered HTTP %d", name, status)
            raise DistributionError(
                f"distribution rejected (HTTP {status}): {body}", status=status, body=body
            )

        logger.info("Distributed certificate %s for %s", payload["serialNumber"], name)
        return True
