"""EBS snapshot lifecycle."""

from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError
from oslo_log import log as logging

from . import errors
from . import models
from .context import RequestContext
from .exceptions import InvalidMaxResults, MultipleSnapshots, NotFound, ProviderError, SnapshotNotFound
from .pagination import paginate

LOG = logging.getLogger(__name__)

SNAPSHOT_DESCRIPTION = "Created by AWS EBS CSI driver for volume %s"


def snapshot_from_ec2(ec2_snapshot: Optional[Dict[str, Any]]) -> Optional[models.Snapshot]:
    """Convert a DescribeSnapshots/CreateSnapshot item.

    Only the ``completed`` state counts as ready; every other state,
    known or not, does not.
    """
    if ec2_snapshot is None:
        return None
    return models.Snapshot(
        snapshot_id=ec2_snapshot.get("SnapshotId", ""),
        source_volume_id=ec2_snapshot.get("VolumeId", ""),
        size=models.gib_to_bytes(ec2_snapshot.get("VolumeSize") or 0),
        creation_time=ec2_snapshot.get("StartTime"),
        ready_to_use=ec2_snapshot.get("State") == models.SNAPSHOT_STATE_COMPLETED,
    )


class SnapshotManager:
    """Creates, finds, lists and deletes EBS snapshots."""

    def __init__(self, ec2):
        self.ec2 = ec2

    def create(self, ctx: RequestContext, volume_id: str, options: models.SnapshotOptions) -> models.Snapshot:
        """Snapshot a volume. Always issues a new snapshot.

        Raises:
            ProviderError: creation failed or no snapshot was returned
        """
        ctx.check()
        try:
            response = self.ec2.create_snapshot(
                VolumeId=volume_id,
                DryRun=False,
                TagSpecifications=models.tag_specifications("snapshot", options.tags),
                Description=SNAPSHOT_DESCRIPTION % volume_id,
            )
        except (BotoCoreError, ClientError) as e:
            LOG.error("Error creating snapshot of volume %s: %s", volume_id, e)
            raise errors.wrap_provider_error(e, "CreateSnapshot", volume_id) from e
        if not response:
            raise ProviderError(operation="CreateSnapshot", resource_id=volume_id, details="nil CreateSnapshot response")

        snapshot = snapshot_from_ec2(response)
        LOG.info("Created snapshot %s of volume %s", snapshot.snapshot_id, volume_id)
        return snapshot

    def delete(self, ctx: RequestContext, snapshot_id: str) -> bool:
        """Delete a snapshot.

        Raises:
            SnapshotNotFound: snapshot is already gone
            ProviderError: deletion failed
        """
        ctx.check()
        try:
            self.ec2.delete_snapshot(SnapshotId=snapshot_id, DryRun=False)
        except (BotoCoreError, ClientError) as e:
            if errors.is_provider_error(e, errors.SNAPSHOT_NOT_FOUND):
                raise SnapshotNotFound(snapshot_id=snapshot_id) from e
            raise errors.wrap_provider_error(e, "DeleteSnapshot", snapshot_id) from e
        LOG.info("Deleted snapshot %s", snapshot_id)
        return True

    def get_by_name(self, ctx: RequestContext, name: str) -> models.Snapshot:
        request = {"Filters": [{"Name": "tag:" + models.SNAPSHOT_NAME_TAG_KEY, "Values": [name]}]}
        return snapshot_from_ec2(self.get_snapshot(ctx, request, resource_id=name))

    def get_by_id(self, ctx: RequestContext, snapshot_id: str) -> models.Snapshot:
        return snapshot_from_ec2(self.get_snapshot(ctx, {"SnapshotIds": [snapshot_id]}, resource_id=snapshot_id))

    def get_snapshot(self, ctx: RequestContext, request: Dict[str, Any], resource_id: str = "") -> Dict[str, Any]:
        """Describe exactly one snapshot, draining all pages.

        Raises:
            SnapshotNotFound: nothing matched
            MultipleSnapshots: more than one snapshot matched
        """

        def fetch(page_request):
            ctx.check()
            try:
                response = self.ec2.describe_snapshots(**page_request)
            except (BotoCoreError, ClientError) as e:
                if errors.is_provider_error(e, errors.SNAPSHOT_NOT_FOUND):
                    raise SnapshotNotFound(snapshot_id=resource_id) from e
                raise errors.wrap_provider_error(e, "DescribeSnapshots", resource_id) from e
            return response.get("Snapshots") or [], response.get("NextToken")

        snapshots = paginate(request, fetch)
        if len(snapshots) > 1:
            raise MultipleSnapshots(resource_id=resource_id)
        if not snapshots:
            raise SnapshotNotFound(snapshot_id=resource_id)
        return snapshots[0]

    def list(
        self,
        ctx: RequestContext,
        volume_id: str = "",
        max_results: int = 0,
        next_token: str = "",
    ) -> models.ListSnapshotsResponse:
        """Fetch one page of snapshots, optionally of one source volume.

        ``max_results`` of 0 lets the provider choose the page size (up to
        1000). Callers page through the returned ``next_token``.

        Raises:
            InvalidMaxResults: ``max_results`` between 1 and 4
            NotFound: no snapshots matched
            ProviderError: describe call failed
        """
        if 0 < max_results < models.MIN_SNAPSHOT_PAGE_SIZE:
            raise InvalidMaxResults(max_results=max_results)

        request: Dict[str, Any] = {}
        if max_results:
            request["MaxResults"] = max_results
        if next_token:
            request["NextToken"] = next_token
        if volume_id:
            request["Filters"] = [{"Name": "volume-id", "Values": [volume_id]}]

        ctx.check()
        try:
            response = self.ec2.describe_snapshots(**request)
        except (BotoCoreError, ClientError) as e:
            raise errors.wrap_provider_error(e, "DescribeSnapshots", volume_id) from e

        snapshots = [snapshot_from_ec2(item) for item in response.get("Snapshots") or []]
        if not snapshots:
            raise NotFound(resource_id=f"snapshots of volume {volume_id}" if volume_id else "snapshots")

        return models.ListSnapshotsResponse(snapshots=snapshots, next_token=response.get("NextToken") or "")
