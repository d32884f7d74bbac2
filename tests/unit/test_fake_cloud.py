"""
Unit tests for the in-memory cloud provider.
"""

import pytest

from ebs_csi_cloud.cloud.cloud import CloudProvider
from ebs_csi_cloud.cloud.context import RequestContext
from ebs_csi_cloud.cloud.exceptions import (
    Cancelled,
    DiskExistsDiffSize,
    InstanceNotFound,
    InvalidArgument,
    InvalidMaxResults,
    InvalidVolumeType,
    MultipleDisks,
    NotFound,
    SnapshotNotFound,
    VolumeInUse,
    VolumeNotFound,
    WaitTimeout,
)
from ebs_csi_cloud.cloud.models import GiB, DiskOptions, SnapshotOptions


class TestFakeCloudProvider:
    """Tests for FakeCloudProvider."""

    @pytest.mark.unit
    def test_is_cloud_provider(self, fake_cloud):
        assert isinstance(fake_cloud, CloudProvider)

    @pytest.mark.unit
    def test_disk_lifecycle(self, fake_cloud, ctx):
        """Test create, lookup, resize and delete."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions(capacity_bytes=10 * GiB))

        assert disk.availability_zone == "us-test-1a"
        assert fake_cloud.get_disk_by_name(ctx, "pv-1", 10 * GiB) == disk
        assert fake_cloud.get_disk_by_id(ctx, disk.volume_id).capacity_gib == 10

        assert fake_cloud.resize_disk(ctx, disk.volume_id, 5 * GiB) == 10
        assert fake_cloud.resize_disk(ctx, disk.volume_id, 20 * GiB + 1) == 21

        assert fake_cloud.delete_disk(ctx, disk.volume_id) is True
        with pytest.raises(VolumeNotFound):
            fake_cloud.delete_disk(ctx, disk.volume_id)

    @pytest.mark.unit
    def test_name_errors(self, fake_cloud, ctx):
        """Test size conflicts and duplicate names."""
        fake_cloud.create_disk(ctx, "pv-1", DiskOptions(capacity_bytes=10 * GiB))

        with pytest.raises(DiskExistsDiffSize):
            fake_cloud.get_disk_by_name(ctx, "pv-1", 20 * GiB)

        fake_cloud.create_disk(ctx, "pv-1", DiskOptions(capacity_bytes=10 * GiB))
        with pytest.raises(MultipleDisks):
            fake_cloud.get_disk_by_name(ctx, "pv-1", 10 * GiB)

        with pytest.raises(VolumeNotFound):
            fake_cloud.get_disk_by_name(ctx, "pv-2", 10 * GiB)

    @pytest.mark.unit
    def test_invalid_type(self, fake_cloud, ctx):
        with pytest.raises(InvalidVolumeType):
            fake_cloud.create_disk(ctx, "pv-1", DiskOptions(volume_type="gp9"))
        assert fake_cloud.disks == {}

    @pytest.mark.unit
    def test_attach_detach(self, fake_cloud, ctx):
        """Test attach is idempotent per node and exclusive across nodes."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions())

        path = fake_cloud.attach_disk(ctx, disk.volume_id, "i-1")
        assert path == "/dev/xvdba"
        assert fake_cloud.attach_disk(ctx, disk.volume_id, "i-1") == path
        fake_cloud.wait_for_attachment_state(ctx, disk.volume_id, "attached")

        with pytest.raises(VolumeInUse):
            fake_cloud.attach_disk(ctx, disk.volume_id, "i-2")

        fake_cloud.detach_disk(ctx, disk.volume_id, "i-1")
        fake_cloud.wait_for_attachment_state(ctx, disk.volume_id, "detached")
        with pytest.raises(NotFound):
            fake_cloud.detach_disk(ctx, disk.volume_id, "i-1")

    @pytest.mark.unit
    def test_unknown_instance(self, fake_cloud, ctx):
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions())

        assert fake_cloud.instance_exists(ctx, "i-1")
        assert not fake_cloud.instance_exists(ctx, "i-404")
        with pytest.raises(InstanceNotFound):
            fake_cloud.attach_disk(ctx, disk.volume_id, "i-404")

    @pytest.mark.unit
    def test_snapshots(self, fake_cloud, ctx):
        """Test snapshot creation, lookup, listing and deletion."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions(capacity_bytes=10 * GiB))
        snapshots = [
            fake_cloud.create_snapshot(ctx, disk.volume_id, SnapshotOptions(tags={"CSIVolumeSnapshotName": f"s{i}"}))
            for i in range(6)
        ]

        assert fake_cloud.get_snapshot_by_name(ctx, "s0") == snapshots[0]
        assert fake_cloud.get_snapshot_by_id(ctx, snapshots[1].snapshot_id).size == 10 * GiB

        first = fake_cloud.list_snapshots(ctx, disk.volume_id, 5, "")
        assert len(first.snapshots) == 5
        second = fake_cloud.list_snapshots(ctx, disk.volume_id, 5, first.next_token)
        assert [s.snapshot_id for s in second.snapshots] == [snapshots[5].snapshot_id]
        assert second.next_token == ""

        with pytest.raises(InvalidMaxResults):
            fake_cloud.list_snapshots(ctx, "", 3, "")
        with pytest.raises(NotFound):
            fake_cloud.list_snapshots(ctx, "vol-other", 0, "")

        fake_cloud.delete_snapshot(ctx, snapshots[0].snapshot_id)
        with pytest.raises(SnapshotNotFound):
            fake_cloud.get_snapshot_by_id(ctx, snapshots[0].snapshot_id)

    @pytest.mark.unit
    def test_restore_from_missing_snapshot(self, fake_cloud, ctx):
        with pytest.raises(SnapshotNotFound):
            fake_cloud.create_disk(ctx, "pv-1", DiskOptions(snapshot_id="snap-404"))

    @pytest.mark.unit
    def test_cancelled_context(self, fake_cloud):
        ctx = RequestContext()
        ctx.cancel()
        with pytest.raises(Cancelled):
            fake_cloud.create_disk(ctx, "pv-1", DiskOptions())

    @pytest.mark.unit
    def test_wait_for_attachment_state_times_out(self, fake_cloud, ctx):
        """Test a state that is not reached times out like EC2Cloud."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions())

        with pytest.raises(WaitTimeout):
            fake_cloud.wait_for_attachment_state(ctx, disk.volume_id, "attached")

        fake_cloud.attach_disk(ctx, disk.volume_id, "i-1")
        with pytest.raises(WaitTimeout):
            fake_cloud.wait_for_attachment_state(ctx, disk.volume_id, "detached")

        with pytest.raises(VolumeNotFound):
            fake_cloud.wait_for_attachment_state(ctx, "vol-404", "attached")

    @pytest.mark.unit
    def test_returned_disks_are_copies(self, fake_cloud, ctx):
        """Test a resize does not change disks handed out earlier."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions(capacity_bytes=10 * GiB))
        found = fake_cloud.get_disk_by_name(ctx, "pv-1", 10 * GiB)

        fake_cloud.resize_disk(ctx, disk.volume_id, 20 * GiB)

        assert disk.capacity_gib == 10
        assert found.capacity_gib == 10
        assert fake_cloud.get_disk_by_id(ctx, disk.volume_id).capacity_gib == 20

    @pytest.mark.unit
    def test_returned_snapshots_are_copies(self, fake_cloud, ctx):
        """Test changing a returned snapshot leaves the stored one alone."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions())
        snapshot = fake_cloud.create_snapshot(ctx, disk.volume_id, SnapshotOptions())

        snapshot.ready_to_use = False

        assert fake_cloud.get_snapshot_by_id(ctx, snapshot.snapshot_id).ready_to_use is True

    @pytest.mark.unit
    @pytest.mark.parametrize("token", ["abc", "-1", "1.5"])
    def test_invalid_next_token(self, fake_cloud, ctx, token):
        """Test a token this cloud never handed out is rejected."""
        disk = fake_cloud.create_disk(ctx, "pv-1", DiskOptions())
        fake_cloud.create_snapshot(ctx, disk.volume_id, SnapshotOptions())

        with pytest.raises(InvalidArgument):
            fake_cloud.list_snapshots(ctx, disk.volume_id, 0, token)
