"""Configuration for the EC2 cloud session."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from oslo_config import cfg

from .exceptions import ConfigurationError

# Configuration group name
CONF_GROUP = "ebs_csi_cloud"

ENV_REGION = "AWS_REGION"
ENV_ENDPOINT = "AWS_EC2_ENDPOINT"
ENV_ENDPOINT_INSECURE = "AWS_EC2_ENDPOINT_UNSECURE"

_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")

cloud_opts = [
    cfg.StrOpt(
        "region",
        default=None,
        help="AWS region the volumes and instances live in (e.g., us-east-1)",
    ),
    cfg.StrOpt(
        "ec2_endpoint",
        default=None,
        help="Override URL for the EC2 API endpoint (e.g., https://ec2.example.com)",
    ),
    cfg.BoolOpt(
        "ec2_endpoint_insecure",
        default=False,
        help="Disable TLS certificate verification for the EC2 endpoint",
    ),
    cfg.IntOpt(
        "api_retry_count",
        default=3,
        min=0,
        max=20,
        help="Number of SDK-level retries for throttled or failed EC2 requests",
    ),
]


def register_opts(conf, group=None):
    """Register cloud configuration options.

    Args:
        conf: oslo_config.cfg.ConfigOpts instance
        group: Configuration group name (default: CONF_GROUP)
    """
    conf.register_opts(cloud_opts, group=group or CONF_GROUP)


def list_opts():
    """Return options for oslo-config-generator."""
    return [(CONF_GROUP, cloud_opts)]


def parse_bool(raw: str) -> bool:
    """Parse a boolean toggle strictly.

    Raises:
        ValueError: value is not a recognised boolean
    """
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value {raw!r}")


def validate_endpoint(endpoint: str) -> str:
    """Check that an endpoint override is an absolute http(s) URL.

    Raises:
        ConfigurationError: endpoint is malformed
    """
    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(details=f"malformed EC2 endpoint {endpoint!r}")
    return endpoint


@dataclass(frozen=True)
class CloudConfig:
    region: str
    endpoint: Optional[str] = None
    insecure: bool = False
    retry_count: int = 3

    def __post_init__(self):
        if not self.region:
            raise ConfigurationError(details="region must be set")
        if self.endpoint:
            validate_endpoint(self.endpoint)

    @classmethod
    def from_env(cls, region: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "CloudConfig":
        """Build the configuration from environment toggles.

        ``AWS_EC2_ENDPOINT`` overrides the endpoint and
        ``AWS_EC2_ENDPOINT_UNSECURE`` disables certificate verification.

        Raises:
            ConfigurationError: a toggle cannot be parsed
        """
        if environ is None:
            environ = os.environ

        insecure = False
        raw_insecure = environ.get(ENV_ENDPOINT_INSECURE, "")
        if raw_insecure:
            try:
                insecure = parse_bool(raw_insecure)
            except ValueError as e:
                raise ConfigurationError(
                    details=f"unable to parse environment variable {ENV_ENDPOINT_INSECURE}: {e}"
                ) from e

        return cls(
            region=region or environ.get(ENV_REGION, ""),
            endpoint=environ.get(ENV_ENDPOINT) or None,
            insecure=insecure,
        )

    @classmethod
    def from_conf(cls, conf, group: str = CONF_GROUP) -> "CloudConfig":
        """Build the configuration from registered oslo.config options."""
        section = getattr(conf, group)
        return cls(
            region=section.region or "",
            endpoint=section.ec2_endpoint or None,
            insecure=section.ec2_endpoint_insecure,
            retry_count=section.api_retry_count,
        )
