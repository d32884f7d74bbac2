"""EC2 client construction."""

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError
from oslo_log import log as logging

from .configuration import CloudConfig
from .exceptions import ConfigurationError

LOG = logging.getLogger(__name__)


def new_ec2_client(config: CloudConfig):
    """Create a boto3 EC2 client for ``config``.

    Fails at construction rather than on first use when the session cannot
    be built.

    Raises:
        ConfigurationError: session or client could not be created
    """
    # Throttled and 5xx responses are retried by botocore with its own backoff.
    client_config = Config(
        region_name=config.region,
        retries={"max_attempts": config.retry_count, "mode": "standard"},
    )

    try:
        session = boto3.session.Session(region_name=config.region)
        client = session.client(
            "ec2",
            endpoint_url=config.endpoint,
            verify=not config.insecure,
            config=client_config,
        )
    except (BotoCoreError, ValueError) as e:
        raise ConfigurationError(details=str(e)) from e

    if config.insecure:
        LOG.warning("TLS certificate verification disabled for EC2 endpoint %s", config.endpoint)
    LOG.info("EC2 client created (region=%s, endpoint=%s)", config.region, config.endpoint or "default")
    return client
