"""In-memory ``CloudProvider`` for consumers' tests."""

import dataclasses
import itertools
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from . import models
from .cloud import CloudProvider
from .exceptions import (
    DiskExistsDiffSize,
    InstanceNotFound,
    InvalidArgument,
    InvalidMaxResults,
    InvalidVolumeType,
    MultipleDisks,
    MultipleSnapshots,
    NotFound,
    SnapshotNotFound,
    VolumeInUse,
    VolumeNotFound,
    WaitTimeout,
)


class FakeCloudProvider(CloudProvider):
    """Dict-backed cloud with the same error semantics as ``EC2Cloud``.

    State changes are immediate, so nothing ever waits. Snapshots are
    created completed.
    Callers get copies of the stored disks and snapshots.
    """

    def __init__(self, zones: Optional[List[str]] = None, instances: Optional[List[str]] = None):
        self.zones = list(zones or ["us-test-1a"])
        self.instances = set(instances or [])
        self.disks: Dict[str, models.Disk] = {}
        self.disk_tags: Dict[str, Dict[str, str]] = {}
        self.attachments: Dict[str, Dict[str, str]] = {}
        self.snapshots: Dict[str, models.Snapshot] = {}
        self.snapshot_tags: Dict[str, Dict[str, str]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):017x}"

    def create_disk(self, ctx, volume_name, options):
        ctx.check()
        if options.volume_type and options.volume_type not in models.VALID_VOLUME_TYPES:
            raise InvalidVolumeType(volume_type=options.volume_type)
        if options.snapshot_id and options.snapshot_id not in self.snapshots:
            raise SnapshotNotFound(snapshot_id=options.snapshot_id)
        with self._lock:
            disk = models.Disk(
                volume_id=self._next_id("vol"),
                capacity_gib=models.bytes_to_gib(options.capacity_bytes),
                availability_zone=options.availability_zone or self.zones[0],
                snapshot_id=options.snapshot_id,
            )
            tags = dict(options.tags)
            if volume_name:
                tags.setdefault(models.VOLUME_NAME_TAG_KEY, volume_name)
            self.disks[disk.volume_id] = disk
            self.disk_tags[disk.volume_id] = tags
        return dataclasses.replace(disk)

    def delete_disk(self, ctx, volume_id):
        ctx.check()
        with self._lock:
            if volume_id not in self.disks:
                raise VolumeNotFound(volume_id=volume_id)
            del self.disks[volume_id]
            self.disk_tags.pop(volume_id, None)
            self.attachments.pop(volume_id, None)
        return True

    def attach_disk(self, ctx, volume_id, node_id):
        ctx.check()
        with self._lock:
            if node_id not in self.instances:
                raise InstanceNotFound(instance_id=node_id)
            if volume_id not in self.disks:
                raise VolumeNotFound(volume_id=volume_id)
            attachment = self.attachments.get(volume_id)
            if attachment is not None:
                if attachment["instance_id"] != node_id:
                    raise VolumeInUse(volume_id=volume_id)
                return attachment["device"]
            used = {a["device"] for a in self.attachments.values() if a["instance_id"] == node_id}
            device = next(
                path
                for path in (f"/dev/xvd{a}{b}" for a in "bcdefghijklmnopqrstuvwxyz" for b in "abcdefghijklmnopqrstuvwxyz")
                if path not in used
            )
            self.attachments[volume_id] = {"instance_id": node_id, "device": device}
        return device

    def detach_disk(self, ctx, volume_id, node_id):
        ctx.check()
        with self._lock:
            if node_id not in self.instances:
                raise InstanceNotFound(instance_id=node_id)
            attachment = self.attachments.get(volume_id)
            if attachment is None or attachment["instance_id"] != node_id:
                raise NotFound(resource_id=volume_id)
            del self.attachments[volume_id]

    def resize_disk(self, ctx, volume_id, new_size_bytes):
        ctx.check()
        with self._lock:
            disk = self.disks.get(volume_id)
            if disk is None:
                raise VolumeNotFound(volume_id=volume_id)
            disk.capacity_gib = max(disk.capacity_gib, models.round_up_gib(new_size_bytes))
            return disk.capacity_gib

    def wait_for_attachment_state(self, ctx, volume_id, state):
        ctx.check()
        if volume_id not in self.disks:
            raise VolumeNotFound(volume_id=volume_id)
        attached = volume_id in self.attachments
        # Nothing changes while waiting, so a mismatch times out right away.
        if (state == models.ATTACHMENT_STATE_ATTACHED) != attached:
            raise WaitTimeout(what=f"volume {volume_id} to be {state}")

    def get_disk_by_name(self, ctx, name, capacity_bytes):
        ctx.check()
        matches = [
            self.disks[volume_id]
            for volume_id, tags in self.disk_tags.items()
            if tags.get(models.VOLUME_NAME_TAG_KEY) == name
        ]
        if len(matches) > 1:
            raise MultipleDisks(resource_id=name)
        if not matches:
            raise VolumeNotFound(volume_id=name)
        disk = matches[0]
        requested_gib = models.bytes_to_gib(capacity_bytes)
        if disk.capacity_gib != requested_gib:
            raise DiskExistsDiffSize(name=name, actual=disk.capacity_gib, requested=requested_gib)
        return dataclasses.replace(disk)

    def get_disk_by_id(self, ctx, volume_id):
        ctx.check()
        disk = self.disks.get(volume_id)
        if disk is None:
            raise VolumeNotFound(volume_id=volume_id)
        return models.Disk(disk.volume_id, disk.capacity_gib, disk.availability_zone)

    def instance_exists(self, ctx, node_id):
        ctx.check()
        return node_id in self.instances

    def create_snapshot(self, ctx, volume_id, options):
        ctx.check()
        with self._lock:
            disk = self.disks.get(volume_id)
            if disk is None:
                raise VolumeNotFound(volume_id=volume_id)
            snapshot = models.Snapshot(
                snapshot_id=self._next_id("snap"),
                source_volume_id=volume_id,
                size=models.gib_to_bytes(disk.capacity_gib),
                creation_time=datetime.now(timezone.utc),
                ready_to_use=True,
            )
            self.snapshots[snapshot.snapshot_id] = snapshot
            self.snapshot_tags[snapshot.snapshot_id] = dict(options.tags)
        return dataclasses.replace(snapshot)

    def delete_snapshot(self, ctx, snapshot_id):
        ctx.check()
        with self._lock:
            if snapshot_id not in self.snapshots:
                raise SnapshotNotFound(snapshot_id=snapshot_id)
            del self.snapshots[snapshot_id]
            self.snapshot_tags.pop(snapshot_id, None)
        return True

    def get_snapshot_by_name(self, ctx, name):
        ctx.check()
        matches = [
            self.snapshots[snapshot_id]
            for snapshot_id, tags in self.snapshot_tags.items()
            if tags.get(models.SNAPSHOT_NAME_TAG_KEY) == name
        ]
        if len(matches) > 1:
            raise MultipleSnapshots(resource_id=name)
        if not matches:
            raise SnapshotNotFound(snapshot_id=name)
        return dataclasses.replace(matches[0])

    def get_snapshot_by_id(self, ctx, snapshot_id):
        ctx.check()
        snapshot = self.snapshots.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFound(snapshot_id=snapshot_id)
        return dataclasses.replace(snapshot)

    def list_snapshots(self, ctx, volume_id="", max_results=0, next_token=""):
        ctx.check()
        if 0 < max_results < models.MIN_SNAPSHOT_PAGE_SIZE:
            raise InvalidMaxResults(max_results=max_results)
        snapshots = [s for s in self.snapshots.values() if not volume_id or s.source_volume_id == volume_id]
        start = 0
        if next_token:
            if not next_token.isdigit():
                raise InvalidArgument(details=f"invalid next token {next_token!r}")
            start = int(next_token)
        end = start + max_results if max_results else len(snapshots)
        page = snapshots[start:end]
        if not page:
            raise NotFound(resource_id=f"snapshots of volume {volume_id}" if volume_id else "snapshots")
        return models.ListSnapshotsResponse(
            snapshots=[dataclasses.replace(s) for s in page],
            next_token=str(end) if end < len(snapshots) else "",
        )
