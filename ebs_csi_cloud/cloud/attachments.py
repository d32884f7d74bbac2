"""Attaching and detaching volumes to and from instances.

Attach walks ``allocating-device -> attach-requested -> polling-attached``
and detach walks ``releasing-device -> detach-requested -> polling-detached``.
The device path comes from the device manager, which owns the per-instance
path space; this module only borrows a device for the duration of one call
and always hands it back, tainted if the attach did not converge.
"""

from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError
from oslo_log import log as logging

from . import errors
from . import models
from .context import RequestContext
from .exceptions import InstanceNotFound, MultipleInstances, NotFound, VolumeInUse
from .pagination import paginate
from .volumes import VolumeManager
from .wait import ATTACHMENT_BACKOFF, exponential_backoff

LOG = logging.getLogger(__name__)

# Detach errors meaning the volume is not attached (anymore).
_DETACH_NOT_FOUND_KINDS = (errors.ErrorKind.NOT_FOUND, errors.ErrorKind.INCORRECT_STATE)


class AttachmentManager:
    """Attaches volumes to instances and waits for the attachment state."""

    attachment_backoff = ATTACHMENT_BACKOFF

    def __init__(self, ec2, volumes: VolumeManager, device_manager):
        self.ec2 = ec2
        self.volumes = volumes
        self.device_manager = device_manager

    def attach(self, ctx: RequestContext, volume_id: str, node_id: str) -> str:
        """Attach a volume to an instance.

        If the device manager already knows a device for the volume on this
        instance, no attach call is issued and only the wait runs.

        Returns:
            Local device path

        Raises:
            InstanceNotFound: instance does not exist
            VolumeInUse: volume is attached elsewhere or an attach is in progress
            ProviderError: attach call failed
            WaitTimeout: attachment did not reach the attached state
        """
        instance = self.get_instance(ctx, node_id)

        device = self.device_manager.new_device(instance, volume_id)
        with device:
            if not device.is_already_assigned:
                ctx.check()
                try:
                    response = self.ec2.attach_volume(Device=device.path, InstanceId=node_id, VolumeId=volume_id)
                except (BotoCoreError, ClientError) as e:
                    if errors.classify(e) is errors.ErrorKind.ALREADY_EXISTS:
                        raise VolumeInUse(volume_id=volume_id) from e
                    device.taint()
                    LOG.error("Could not attach volume %s to node %s: %s", volume_id, node_id, e)
                    raise errors.wrap_provider_error(e, "AttachVolume", volume_id) from e
                LOG.debug("AttachVolume volume=%s instance=%s request returned %s", volume_id, node_id, response)

            try:
                self.wait_for_attachment_state(ctx, volume_id, models.ATTACHMENT_STATE_ATTACHED)
            except Exception:
                device.taint()
                raise

        LOG.info("Volume %s attached to %s at %s", volume_id, node_id, device.path)
        return device.path

    def detach(self, ctx: RequestContext, volume_id: str, node_id: str) -> None:
        """Detach a volume from an instance.

        Raises:
            InstanceNotFound: instance does not exist
            NotFound: volume is not attached or does not exist
            ProviderError: detach call failed
            WaitTimeout: attachment did not reach the detached state
        """
        instance = self.get_instance(ctx, node_id)

        device = self.device_manager.get_device(instance, volume_id)
        try:
            if not device.is_already_assigned:
                LOG.warning("Detach called on volume %s with no known device on %s", volume_id, node_id)

            ctx.check()
            try:
                self.ec2.detach_volume(InstanceId=node_id, VolumeId=volume_id)
            except (BotoCoreError, ClientError) as e:
                if errors.classify(e) in _DETACH_NOT_FOUND_KINDS:
                    raise NotFound(resource_id=volume_id) from e
                LOG.error("Could not detach volume %s from node %s: %s", volume_id, node_id, e)
                raise errors.wrap_provider_error(e, "DetachVolume", volume_id) from e

            self.wait_for_attachment_state(ctx, volume_id, models.ATTACHMENT_STATE_DETACHED)
        finally:
            device.release(force=True)

        LOG.info("Volume %s detached from %s", volume_id, node_id)

    def wait_for_attachment_state(self, ctx: RequestContext, volume_id: str, state: str) -> None:
        """Poll until one of the volume's attachments reports ``state``.

        A volume without attachments counts as detached.
        """

        def in_state():
            volume = self.volumes.get_volume(ctx, {"VolumeIds": [volume_id]}, resource_id=volume_id)
            attachments = volume.get("Attachments") or []
            if not attachments and state == models.ATTACHMENT_STATE_DETACHED:
                return True
            for attachment in attachments:
                attachment_state = attachment.get("State")
                if not attachment_state:
                    LOG.warning("Ignoring attachment without state for volume %s: %s", volume_id, attachment)
                    continue
                if attachment_state == state:
                    return True
            return False

        exponential_backoff(ctx, self.attachment_backoff, in_state, what=f"volume {volume_id} to be {state}")

    def get_instance(self, ctx: RequestContext, node_id: str) -> Dict[str, Any]:
        """Describe exactly one instance.

        Raises:
            InstanceNotFound: instance does not exist
            MultipleInstances: provider returned more than one instance
            ProviderError: describe call failed
        """

        def fetch(page_request):
            ctx.check()
            try:
                response = self.ec2.describe_instances(**page_request)
            except (BotoCoreError, ClientError) as e:
                if errors.is_provider_error(e, errors.INSTANCE_NOT_FOUND):
                    raise InstanceNotFound(instance_id=node_id) from e
                raise errors.wrap_provider_error(e, "DescribeInstances", node_id) from e
            instances = []
            for reservation in response.get("Reservations") or []:
                instances.extend(reservation.get("Instances") or [])
            return instances, response.get("NextToken")

        instances = paginate({"InstanceIds": [node_id]}, fetch)
        if len(instances) > 1:
            raise MultipleInstances(count=len(instances), resource_id=node_id)
        if not instances:
            raise InstanceNotFound(instance_id=node_id)
        return instances[0]

    def instance_exists(self, ctx: RequestContext, node_id: str) -> bool:
        try:
            self.get_instance(ctx, node_id)
        except InstanceNotFound:
            return False
        return True
