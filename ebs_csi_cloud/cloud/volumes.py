"""EBS volume lifecycle: create, delete, lookup and resize."""

from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError
from oslo_log import log as logging

from . import errors
from . import models
from .context import RequestContext
from .exceptions import (
    DiskExistsDiffSize,
    InvalidVolumeType,
    MultipleDisks,
    ProviderError,
    SnapshotNotFound,
    VolumeNotFound,
)
from .pagination import paginate
from .wait import MODIFICATION_BACKOFF, VOLUME_AVAILABLE_POLL, wait_for

LOG = logging.getLogger(__name__)


def resolve_volume_type(options: models.DiskOptions):
    """Return ``(volume_type, iops)`` for the create request.

    ``iops`` is ``None`` unless the type takes provisioned IOPS.

    Raises:
        InvalidVolumeType: volume type is not supported
    """
    volume_type = options.volume_type
    if not volume_type:
        return models.DEFAULT_VOLUME_TYPE, None
    if volume_type not in models.VALID_VOLUME_TYPES:
        raise InvalidVolumeType(volume_type=volume_type)
    if volume_type in models.PROVISIONED_IOPS_VOLUME_TYPES:
        capacity_gib = models.bytes_to_gib(options.capacity_bytes)
        return volume_type, models.clamp_iops(capacity_gib, options.iops_per_gb)
    return volume_type, None


class VolumeManager:
    """Creates, finds, resizes and deletes EBS volumes."""

    volume_available_poll = VOLUME_AVAILABLE_POLL
    modification_backoff = MODIFICATION_BACKOFF

    def __init__(self, ec2, region: str):
        self.ec2 = ec2
        self.region = region

    def create(self, ctx: RequestContext, name: str, options: models.DiskOptions) -> models.Disk:
        """Issue a new volume and wait for it to become available.

        Callers check for an existing volume with ``get_by_name`` first;
        this always creates.

        Raises:
            InvalidVolumeType: unsupported volume type, nothing is created
            SnapshotNotFound: source snapshot does not exist
            ProviderError: creation failed or the response is incomplete
        """
        volume_type, iops = resolve_volume_type(options)
        capacity_gib = models.bytes_to_gib(options.capacity_bytes)

        tags = dict(options.tags)
        if name:
            tags.setdefault(models.VOLUME_NAME_TAG_KEY, name)

        zone = options.availability_zone
        if not zone:
            zone = self.pick_availability_zone(ctx)
            LOG.debug("Availability zone not provided, using %s", zone)

        request: Dict[str, Any] = {
            "AvailabilityZone": zone,
            "Size": capacity_gib,
            "VolumeType": volume_type,
            "TagSpecifications": models.tag_specifications("volume", tags),
            "Encrypted": options.encrypted,
        }
        if options.kms_key_id:
            request["KmsKeyId"] = options.kms_key_id
            request["Encrypted"] = True
        if iops:
            request["Iops"] = iops
        if options.snapshot_id:
            request["SnapshotId"] = options.snapshot_id

        ctx.check()
        try:
            response = self.ec2.create_volume(**request)
        except (BotoCoreError, ClientError) as e:
            if errors.is_provider_error(e, errors.SNAPSHOT_NOT_FOUND):
                raise SnapshotNotFound(snapshot_id=options.snapshot_id) from e
            LOG.error("Could not create volume %s: %s", name, e)
            raise errors.wrap_provider_error(e, "CreateVolume", name) from e

        volume_id = response.get("VolumeId")
        if not volume_id:
            raise ProviderError(operation="CreateVolume", resource_id=name, details="volume ID was not returned")
        size = response.get("Size")
        if not size:
            raise ProviderError(operation="CreateVolume", resource_id=volume_id, details="disk size was not returned")

        self.wait_for_volume(ctx, volume_id)

        LOG.info("Created volume %s (%s, %d GiB) in %s", volume_id, volume_type, size, zone)
        return models.Disk(
            volume_id=volume_id,
            capacity_gib=size,
            availability_zone=zone,
            snapshot_id=options.snapshot_id,
        )

    def delete(self, ctx: RequestContext, volume_id: str) -> bool:
        """Delete a volume.

        Raises:
            VolumeNotFound: volume is already gone
            ProviderError: deletion failed
        """
        ctx.check()
        try:
            self.ec2.delete_volume(VolumeId=volume_id)
        except (BotoCoreError, ClientError) as e:
            if errors.is_provider_error(e, errors.VOLUME_NOT_FOUND):
                raise VolumeNotFound(volume_id=volume_id) from e
            raise errors.wrap_provider_error(e, "DeleteVolume", volume_id) from e
        LOG.info("Deleted volume %s", volume_id)
        return True

    def get_by_name(self, ctx: RequestContext, name: str, capacity_bytes: int) -> models.Disk:
        """Find the volume tagged with ``name``.

        Raises:
            VolumeNotFound: no volume carries the name
            MultipleDisks: more than one volume carries the name
            DiskExistsDiffSize: the volume's size differs from ``capacity_bytes``
        """
        request = {"Filters": [{"Name": "tag:" + models.VOLUME_NAME_TAG_KEY, "Values": [name]}]}
        volume = self.get_volume(ctx, request, resource_id=name)

        size_gib = volume.get("Size", 0)
        requested_gib = models.bytes_to_gib(capacity_bytes)
        if size_gib != requested_gib:
            raise DiskExistsDiffSize(name=name, actual=size_gib, requested=requested_gib)

        return models.Disk(
            volume_id=volume.get("VolumeId", ""),
            capacity_gib=size_gib,
            availability_zone=volume.get("AvailabilityZone", ""),
            snapshot_id=volume.get("SnapshotId") or "",
        )

    def get_by_id(self, ctx: RequestContext, volume_id: str) -> models.Disk:
        volume = self.get_volume(ctx, {"VolumeIds": [volume_id]}, resource_id=volume_id)
        return models.Disk(
            volume_id=volume.get("VolumeId", ""),
            capacity_gib=volume.get("Size", 0),
            availability_zone=volume.get("AvailabilityZone", ""),
        )

    def get_volume(self, ctx: RequestContext, request: Dict[str, Any], resource_id: str = "") -> Dict[str, Any]:
        """Describe exactly one volume, draining all pages.

        Raises:
            VolumeNotFound: nothing matched
            MultipleDisks: more than one volume matched
            ProviderError: describe call failed
        """

        def fetch(page_request):
            ctx.check()
            try:
                response = self.ec2.describe_volumes(**page_request)
            except (BotoCoreError, ClientError) as e:
                if errors.is_provider_error(e, errors.VOLUME_NOT_FOUND):
                    raise VolumeNotFound(volume_id=resource_id) from e
                raise errors.wrap_provider_error(e, "DescribeVolumes", resource_id) from e
            return response.get("Volumes") or [], response.get("NextToken")

        volumes = paginate(request, fetch)
        if len(volumes) > 1:
            raise MultipleDisks(resource_id=resource_id)
        if not volumes:
            raise VolumeNotFound(volume_id=resource_id)
        return volumes[0]

    def wait_for_volume(self, ctx: RequestContext, volume_id: str) -> None:
        """Wait for a freshly created volume to become available."""

        def is_available():
            volume = self.get_volume(ctx, {"VolumeIds": [volume_id]}, resource_id=volume_id)
            return volume.get("State") == models.VOLUME_STATE_AVAILABLE

        wait_for(ctx, self.volume_available_poll, is_available, what=f"volume {volume_id} to become available")

    def resize(self, ctx: RequestContext, volume_id: str, new_size_bytes: int) -> int:
        """Grow a volume to at least ``new_size_bytes``, in whole GiB.

        Returns:
            Volume size in GiB after the call; never smaller than the
            current size.

        Raises:
            VolumeNotFound: volume does not exist
            ProviderError: modification was rejected
            WaitTimeout: modification did not finish in time
        """
        volume = self.get_volume(ctx, {"VolumeIds": [volume_id]}, resource_id=volume_id)

        # EBS resizes in GiB (not GB) increments.
        new_size_gib = models.round_up_gib(new_size_bytes)
        old_size_gib = volume.get("Size", 0)
        if old_size_gib >= new_size_gib:
            LOG.debug(
                "Volume %s current size (%d GiB) is greater or equal to the new size (%d GiB)",
                volume_id,
                old_size_gib,
                new_size_gib,
            )
            return old_size_gib

        modification: Optional[Dict[str, Any]] = None
        ctx.check()
        try:
            response = self.ec2.modify_volume(VolumeId=volume_id, Size=new_size_gib)
            modification = response.get("VolumeModification")
        except (BotoCoreError, ClientError) as e:
            if errors.classify(e) is not errors.ErrorKind.INCORRECT_MODIFICATION_STATE:
                LOG.error("Could not modify volume %s: %s", volume_id, e)
                raise errors.wrap_provider_error(e, "ModifyVolume", volume_id) from e
            LOG.warning("Volume %s is already being modified, following the in-flight modification", volume_id)
            modification = self.get_latest_modification(ctx, volume_id)

        if not modification:
            raise ProviderError(operation="ModifyVolume", resource_id=volume_id, details="no modification was returned")

        if modification.get("ModificationState") in models.MODIFICATION_TERMINAL_STATES:
            return modification.get("TargetSize", new_size_gib)

        return self.wait_for_modification(ctx, volume_id)

    def get_latest_modification(self, ctx: RequestContext, volume_id: str) -> Dict[str, Any]:
        ctx.check()
        try:
            response = self.ec2.describe_volumes_modifications(VolumeIds=[volume_id])
        except (BotoCoreError, ClientError) as e:
            raise errors.wrap_provider_error(e, "DescribeVolumesModifications", volume_id) from e

        modifications = response.get("VolumesModifications") or []
        if not modifications:
            raise ProviderError(
                operation="DescribeVolumesModifications",
                resource_id=volume_id,
                details="could not find any modifications",
            )
        return modifications[-1]

    def wait_for_modification(self, ctx: RequestContext, volume_id: str) -> int:
        """Wait for the latest modification to finish; return its target size."""
        result = {}

        def is_modified():
            modification = self.get_latest_modification(ctx, volume_id)
            if modification.get("ModificationState") in models.MODIFICATION_TERMINAL_STATES:
                result["size"] = modification.get("TargetSize", 0)
                return True
            return False

        wait_for(ctx, self.modification_backoff, is_modified, what=f"volume {volume_id} modification")
        return result["size"]

    def pick_availability_zone(self, ctx: RequestContext) -> str:
        """Return a zone of the region.

        The provider listing order decides which one; callers must not rely
        on a particular zone.
        """
        ctx.check()
        try:
            response = self.ec2.describe_availability_zones()
        except (BotoCoreError, ClientError) as e:
            raise errors.wrap_provider_error(e, "DescribeAvailabilityZones", self.region) from e

        zones = [zone["ZoneName"] for zone in response.get("AvailabilityZones") or [] if zone.get("ZoneName")]
        if not zones:
            raise ProviderError(
                operation="DescribeAvailabilityZones",
                resource_id=self.region,
                details="no availability zones returned",
            )
        return zones[0]
