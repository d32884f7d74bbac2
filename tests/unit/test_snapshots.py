"""
Unit tests for the snapshot manager.
"""

from datetime import datetime, timezone

import pytest

from ebs_csi_cloud.cloud.exceptions import (
    InvalidMaxResults,
    MultipleSnapshots,
    NotFound,
    ProviderError,
    SnapshotNotFound,
)
from ebs_csi_cloud.cloud.models import GiB, SnapshotOptions
from ebs_csi_cloud.cloud.snapshots import SnapshotManager, snapshot_from_ec2
from fake_ec2 import make_client_error

START = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _snapshot(snapshot_id="snap-1", state="completed", volume_id="vol-1", size=10):
    return {
        "SnapshotId": snapshot_id,
        "VolumeId": volume_id,
        "VolumeSize": size,
        "StartTime": START,
        "State": state,
    }


@pytest.fixture
def manager(mock_ec2):
    return SnapshotManager(mock_ec2)


class TestSnapshotFromEC2:
    """Tests for snapshot_from_ec2."""

    @pytest.mark.unit
    def test_conversion(self):
        """Test fields are mapped and size is in bytes."""
        snapshot = snapshot_from_ec2(_snapshot())

        assert snapshot.snapshot_id == "snap-1"
        assert snapshot.source_volume_id == "vol-1"
        assert snapshot.size == 10 * GiB
        assert snapshot.creation_time == START
        assert snapshot.ready_to_use is True

    @pytest.mark.unit
    @pytest.mark.parametrize("state", ["pending", "error", "recoverable", "something-new", None])
    def test_not_ready(self, state):
        """Test only the completed state is ready."""
        assert snapshot_from_ec2(_snapshot(state=state)).ready_to_use is False

    @pytest.mark.unit
    def test_none(self):
        """Test a missing snapshot converts to None."""
        assert snapshot_from_ec2(None) is None


class TestCreate:
    """Tests for SnapshotManager.create."""

    @pytest.mark.unit
    def test_create_success(self, manager, mock_ec2, ctx):
        """Test the snapshot is tagged and described."""
        mock_ec2.create_snapshot.return_value = _snapshot(state="pending")

        snapshot = manager.create(ctx, "vol-1", SnapshotOptions(tags={"CSIVolumeSnapshotName": "snap-a"}))

        assert snapshot.snapshot_id == "snap-1"
        assert snapshot.ready_to_use is False
        mock_ec2.create_snapshot.assert_called_once_with(
            VolumeId="vol-1",
            DryRun=False,
            TagSpecifications=[
                {"ResourceType": "snapshot", "Tags": [{"Key": "CSIVolumeSnapshotName", "Value": "snap-a"}]}
            ],
            Description="Created by AWS EBS CSI driver for volume vol-1",
        )

    @pytest.mark.unit
    def test_empty_response(self, manager, mock_ec2, ctx):
        """Test an empty response is a provider error."""
        mock_ec2.create_snapshot.return_value = {}

        with pytest.raises(ProviderError, match="nil CreateSnapshot response"):
            manager.create(ctx, "vol-1", SnapshotOptions())

    @pytest.mark.unit
    def test_create_failure(self, manager, mock_ec2, ctx):
        """Test failures are wrapped with the volume ID."""
        mock_ec2.create_snapshot.side_effect = make_client_error("InvalidVolume.NotFound")

        with pytest.raises(ProviderError) as excinfo:
            manager.create(ctx, "vol-1", SnapshotOptions())

        assert excinfo.value.resource_id == "vol-1"


class TestDelete:
    """Tests for SnapshotManager.delete."""

    @pytest.mark.unit
    def test_delete_success(self, manager, mock_ec2, ctx):
        """Test deletion returns True."""
        assert manager.delete(ctx, "snap-1") is True
        mock_ec2.delete_snapshot.assert_called_once_with(SnapshotId="snap-1", DryRun=False)

    @pytest.mark.unit
    def test_delete_missing(self, manager, mock_ec2, ctx):
        """Test deleting a missing snapshot raises SnapshotNotFound."""
        mock_ec2.delete_snapshot.side_effect = make_client_error("InvalidSnapshot.NotFound")

        with pytest.raises(SnapshotNotFound):
            manager.delete(ctx, "snap-1")


class TestLookup:
    """Tests for get_by_name and get_by_id."""

    @pytest.mark.unit
    def test_get_by_name(self, manager, mock_ec2, ctx):
        """Test lookup by name filters on the snapshot name tag."""
        mock_ec2.describe_snapshots.return_value = {"Snapshots": [_snapshot()]}

        assert manager.get_by_name(ctx, "snap-a").snapshot_id == "snap-1"
        mock_ec2.describe_snapshots.assert_called_once_with(
            Filters=[{"Name": "tag:CSIVolumeSnapshotName", "Values": ["snap-a"]}]
        )

    @pytest.mark.unit
    def test_get_by_name_multiple(self, manager, mock_ec2, ctx):
        """Test two snapshots with one name are rejected."""
        mock_ec2.describe_snapshots.return_value = {"Snapshots": [_snapshot("snap-1"), _snapshot("snap-2")]}

        with pytest.raises(MultipleSnapshots):
            manager.get_by_name(ctx, "snap-a")

    @pytest.mark.unit
    def test_get_by_name_missing(self, manager, mock_ec2, ctx):
        """Test no match raises SnapshotNotFound."""
        mock_ec2.describe_snapshots.return_value = {"Snapshots": []}

        with pytest.raises(SnapshotNotFound):
            manager.get_by_name(ctx, "snap-a")

    @pytest.mark.unit
    def test_get_by_id_missing(self, manager, mock_ec2, ctx):
        """Test the provider not-found code maps to SnapshotNotFound."""
        mock_ec2.describe_snapshots.side_effect = make_client_error("InvalidSnapshot.NotFound")

        with pytest.raises(SnapshotNotFound, match="snap-404"):
            manager.get_by_id(ctx, "snap-404")


class TestList:
    """Tests for SnapshotManager.list."""

    @pytest.mark.unit
    @pytest.mark.parametrize("max_results", [1, 2, 3, 4])
    def test_invalid_max_results(self, manager, mock_ec2, ctx, max_results):
        """Test page sizes between 1 and 4 are rejected before any call."""
        with pytest.raises(InvalidMaxResults):
            manager.list(ctx, "", max_results, "")

        mock_ec2.describe_snapshots.assert_not_called()

    @pytest.mark.unit
    def test_list_page(self, manager, mock_ec2, ctx):
        """Test one page is returned with its continuation token."""
        mock_ec2.describe_snapshots.return_value = {
            "Snapshots": [_snapshot("snap-1"), _snapshot("snap-2", state="pending")],
            "NextToken": "t1",
        }

        response = manager.list(ctx, "vol-1", 5, "t0")

        assert [s.snapshot_id for s in response.snapshots] == ["snap-1", "snap-2"]
        assert [s.ready_to_use for s in response.snapshots] == [True, False]
        assert response.next_token == "t1"
        mock_ec2.describe_snapshots.assert_called_once_with(
            MaxResults=5, NextToken="t0", Filters=[{"Name": "volume-id", "Values": ["vol-1"]}]
        )

    @pytest.mark.unit
    def test_list_last_page(self, manager, mock_ec2, ctx):
        """Test the last page has an empty token and no parameters are forced."""
        mock_ec2.describe_snapshots.return_value = {"Snapshots": [_snapshot()]}

        response = manager.list(ctx)

        assert response.next_token == ""
        mock_ec2.describe_snapshots.assert_called_once_with()

    @pytest.mark.unit
    def test_list_empty(self, manager, mock_ec2, ctx):
        """Test an empty result raises NotFound."""
        mock_ec2.describe_snapshots.return_value = {"Snapshots": []}

        with pytest.raises(NotFound):
            manager.list(ctx, "vol-1", 0, "")
