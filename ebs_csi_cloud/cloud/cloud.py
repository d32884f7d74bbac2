"""Cloud provider interface and its EC2 implementation.

The CSI controller and node services talk to volumes, snapshots and
attachments only through ``CloudProvider``.
"""

import abc
from typing import Optional

from oslo_log import log as logging

from ..devicemanager import DeviceManager, InMemoryDeviceManager
from . import models
from .attachments import AttachmentManager
from .client import new_ec2_client
from .configuration import CloudConfig
from .context import RequestContext
from .snapshots import SnapshotManager
from .volumes import VolumeManager

LOG = logging.getLogger(__name__)


class CloudProvider(abc.ABC):
    """Volume, snapshot and attachment operations of a block storage cloud.

    Every operation takes a ``RequestContext`` as its first argument.
    """

    @abc.abstractmethod
    def create_disk(self, ctx: RequestContext, volume_name: str, options: models.DiskOptions) -> models.Disk:
        pass

    @abc.abstractmethod
    def delete_disk(self, ctx: RequestContext, volume_id: str) -> bool:
        pass

    @abc.abstractmethod
    def attach_disk(self, ctx: RequestContext, volume_id: str, node_id: str) -> str:
        pass

    @abc.abstractmethod
    def detach_disk(self, ctx: RequestContext, volume_id: str, node_id: str) -> None:
        pass

    @abc.abstractmethod
    def resize_disk(self, ctx: RequestContext, volume_id: str, new_size_bytes: int) -> int:
        pass

    @abc.abstractmethod
    def wait_for_attachment_state(self, ctx: RequestContext, volume_id: str, state: str) -> None:
        pass

    @abc.abstractmethod
    def get_disk_by_name(self, ctx: RequestContext, name: str, capacity_bytes: int) -> models.Disk:
        pass

    @abc.abstractmethod
    def get_disk_by_id(self, ctx: RequestContext, volume_id: str) -> models.Disk:
        pass

    @abc.abstractmethod
    def instance_exists(self, ctx: RequestContext, node_id: str) -> bool:
        pass

    @abc.abstractmethod
    def create_snapshot(
        self, ctx: RequestContext, volume_id: str, options: models.SnapshotOptions
    ) -> models.Snapshot:
        pass

    @abc.abstractmethod
    def delete_snapshot(self, ctx: RequestContext, snapshot_id: str) -> bool:
        pass

    @abc.abstractmethod
    def get_snapshot_by_name(self, ctx: RequestContext, name: str) -> models.Snapshot:
        pass

    @abc.abstractmethod
    def get_snapshot_by_id(self, ctx: RequestContext, snapshot_id: str) -> models.Snapshot:
        pass

    @abc.abstractmethod
    def list_snapshots(
        self, ctx: RequestContext, volume_id: str, max_results: int, next_token: str
    ) -> models.ListSnapshotsResponse:
        pass


class EC2Cloud(CloudProvider):
    """``CloudProvider`` backed by the EC2 API."""

    def __init__(self, region: str, ec2, device_manager: Optional[DeviceManager] = None):
        self.region = region
        self.ec2 = ec2
        self.device_manager = device_manager or InMemoryDeviceManager()
        self.volumes = VolumeManager(ec2, region)
        self.attachments = AttachmentManager(ec2, self.volumes, self.device_manager)
        self.snapshots = SnapshotManager(ec2)

    def create_disk(self, ctx, volume_name, options):
        return self.volumes.create(ctx, volume_name, options)

    def delete_disk(self, ctx, volume_id):
        return self.volumes.delete(ctx, volume_id)

    def attach_disk(self, ctx, volume_id, node_id):
        return self.attachments.attach(ctx, volume_id, node_id)

    def detach_disk(self, ctx, volume_id, node_id):
        self.attachments.detach(ctx, volume_id, node_id)

    def resize_disk(self, ctx, volume_id, new_size_bytes):
        return self.volumes.resize(ctx, volume_id, new_size_bytes)

    def wait_for_attachment_state(self, ctx, volume_id, state):
        self.attachments.wait_for_attachment_state(ctx, volume_id, state)

    def get_disk_by_name(self, ctx, name, capacity_bytes):
        return self.volumes.get_by_name(ctx, name, capacity_bytes)

    def get_disk_by_id(self, ctx, volume_id):
        return self.volumes.get_by_id(ctx, volume_id)

    def instance_exists(self, ctx, node_id):
        return self.attachments.instance_exists(ctx, node_id)

    def create_snapshot(self, ctx, volume_id, options):
        return self.snapshots.create(ctx, volume_id, options)

    def delete_snapshot(self, ctx, snapshot_id):
        return self.snapshots.delete(ctx, snapshot_id)

    def get_snapshot_by_name(self, ctx, name):
        return self.snapshots.get_by_name(ctx, name)

    def get_snapshot_by_id(self, ctx, snapshot_id):
        return self.snapshots.get_by_id(ctx, snapshot_id)

    def list_snapshots(self, ctx, volume_id="", max_results=0, next_token=""):
        return self.snapshots.list(ctx, volume_id, max_results, next_token)


def new_cloud(config: CloudConfig, device_manager: Optional[DeviceManager] = None) -> EC2Cloud:
    """Create the EC2 cloud described by ``config``.

    Raises:
        ConfigurationError: EC2 session cannot be built
    """
    return EC2Cloud(config.region, new_ec2_client(config), device_manager)
