"""
Helpers shared by the CLI command groups.
"""

from typing import Optional

from oslo_config import cfg
from oslo_log import log as logging

from ebs_csi_cloud.cloud.cloud import CloudProvider, new_cloud
from ebs_csi_cloud.cloud.configuration import CloudConfig
from ebs_csi_cloud.cloud.context import RequestContext

PROJECT = "ebs-csi-cloud"
DEFAULT_TIMEOUT = 300


def setup_logging(debug: bool = False) -> None:
    """Configure oslo.log for a CLI run."""
    conf = cfg.ConfigOpts()
    logging.register_options(conf)
    conf([], project=PROJECT, default_config_files=[])
    if debug:
        conf.set_override("debug", True)
    logging.setup(conf, PROJECT)


def get_cloud(region: Optional[str] = None) -> CloudProvider:
    """Build the EC2 cloud from the environment, region taken from ``--region`` first."""
    return new_cloud(CloudConfig.from_env(region=region))


def new_context(timeout: Optional[float] = DEFAULT_TIMEOUT) -> RequestContext:
    return RequestContext(timeout=timeout)
