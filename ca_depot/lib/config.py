"""Signer, distribution and CA bootstrap configuration dataclasses."""

import os
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.x509 import oid

from .errors import ConfigError

URL_ENV_VAR = "URL_CERT"
TOKEN_ENV_VAR = "JWT_TOKEN"


@dataclass(frozen=True)
class SignerConfig:
    """Signer settings, fixed once the Signer is constructed."""

    ca_pass: str = field(default="", repr=False)
    allow_renewal_days: int = 14
    validity_days: int = 365

    def __post_init__(self) -> None:
        if self.validity_days <= 0:
            raise ConfigError("validity_days must be positive")
        if self.allow_renewal_days < 0:
            raise ConfigError("allow_renewal_days must not be negative")


@dataclass(frozen=True)
class DistributionConfig:
    """Endpoint and credentials for the distribution authority."""

    url: str
    token: str
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigError("distribution url is not set")
        if self.timeout <= 0:
            raise ConfigError("distribution timeout must be positive")

    def __repr__(self) -> str:
        return f"DistributionConfig(url={self.url!r}, token='***', timeout={self.timeout})"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "DistributionConfig":
        """Build config from URL_CERT and JWT_TOKEN.

        Args:
            environ: Mapping to read from (default: os.environ)

        Raises:
            ConfigError: If URL_CERT is missing or empty
        """
        env = os.environ if environ is None else environ
        url = env.get(URL_ENV_VAR, "")
        if not url:
            raise ConfigError(f"{URL_ENV_VAR} is not set")
        return cls(url=url, token=env.get(TOKEN_ENV_VAR, ""))


@dataclass
class CAConfig:
    """Self-signed CA bootstrap settings."""

    country: str = "JP"
    state: str = "Tokyo"
    locality: str = "Tokyo"
    organization: str = "ca_depot"
    organizational_unit: str = "Client Authentication"
    validity_years: int = 10
    key_size: int = 4096


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name."""

    country: str
    state: str
    locality: str
    organization: str
    organizational_unit: str
    common_name: str

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        return x509.Name(
            [
                x509.NameAttribute(oid.NameOID.COUNTRY_NAME, self.country),
                x509.NameAttribute(oid.NameOID.STATE_OR_PROVINCE_NAME, self.state),
                x509.NameAttribute(oid.NameOID.LOCALITY_NAME, self.locality),
                x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization),
                x509.NameAttribute(oid.NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
                x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name),
            ]
        )

    @classmethod
    def from_config(cls, config: CAConfig, common_name: str) -> "DistinguishedName":
        """Build DN from CAConfig fields + common_name."""
        return cls(
            country=config.country,
            state=config.state,
            locality=config.locality,
            organization=config.organization,
            organizational_unit=config.organizational_unit,
            common_name=common_name,
        )
