"""Volume and snapshot types plus provisioning constants."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

GiB = 1024 * 1024 * 1024

# Volume types
VOLUME_TYPE_IO1 = "io1"
VOLUME_TYPE_IO2 = "io2"
VOLUME_TYPE_GP2 = "gp2"
VOLUME_TYPE_ST2 = "st2"
VOLUME_TYPE_STANDARD = "standard"

VALID_VOLUME_TYPES = (
    VOLUME_TYPE_IO1,
    VOLUME_TYPE_IO2,
    VOLUME_TYPE_GP2,
    VOLUME_TYPE_ST2,
    VOLUME_TYPE_STANDARD,
)
PROVISIONED_IOPS_VOLUME_TYPES = (VOLUME_TYPE_IO1, VOLUME_TYPE_IO2)

# Provisioning limits, see
# http://docs.aws.amazon.com/AWSEC2/latest/UserGuide/EBSVolumeTypes.html
MIN_TOTAL_IOPS = 100
MAX_TOTAL_IOPS = 20000

DEFAULT_VOLUME_SIZE = 100 * GiB
DEFAULT_VOLUME_TYPE = VOLUME_TYPE_GP2

# Tags
VOLUME_NAME_TAG_KEY = "CSIVolumeName"
SNAPSHOT_NAME_TAG_KEY = "CSIVolumeSnapshotName"

# Provider states
VOLUME_STATE_AVAILABLE = "available"
ATTACHMENT_STATE_ATTACHED = "attached"
ATTACHMENT_STATE_DETACHED = "detached"
SNAPSHOT_STATE_COMPLETED = "completed"
MODIFICATION_STATE_COMPLETED = "completed"
MODIFICATION_STATE_OPTIMIZING = "optimizing"
MODIFICATION_TERMINAL_STATES = (MODIFICATION_STATE_COMPLETED, MODIFICATION_STATE_OPTIMIZING)

# Smallest page DescribeSnapshots accepts when MaxResults is set.
MIN_SNAPSHOT_PAGE_SIZE = 5


def bytes_to_gib(size_bytes: int) -> int:
    return size_bytes // GiB


def gib_to_bytes(size_gib: int) -> int:
    return size_gib * GiB


def round_up_gib(size_bytes: int) -> int:
    """Round a byte count up to whole GiB."""
    return (size_bytes + GiB - 1) // GiB


def clamp_iops(capacity_gib: int, iops_per_gb: int) -> int:
    """Total IOPS for a provisioned IOPS volume, within provider limits."""
    iops = capacity_gib * iops_per_gb
    return max(MIN_TOTAL_IOPS, min(MAX_TOTAL_IOPS, iops))


@dataclass
class Disk:
    volume_id: str
    capacity_gib: int
    availability_zone: str
    snapshot_id: str = ""


@dataclass
class DiskOptions:
    """Parameters for creating a volume.

    Supplying ``kms_key_id`` implies encryption.
    """

    capacity_bytes: int = DEFAULT_VOLUME_SIZE
    tags: Dict[str, str] = field(default_factory=dict)
    volume_type: str = ""
    iops_per_gb: int = 0
    availability_zone: str = ""
    encrypted: bool = False
    # Fully qualified key ARN, e.g.
    # arn:aws:kms:us-east-1:012345678910:key/abcd1234-a123-456a-a12b-a123b4cd56ef
    kms_key_id: str = ""
    snapshot_id: str = ""


@dataclass
class Snapshot:
    snapshot_id: str
    source_volume_id: str
    size: int
    creation_time: Optional[datetime]
    ready_to_use: bool


@dataclass
class SnapshotOptions:
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class ListSnapshotsResponse:
    snapshots: List[Snapshot]
    # Empty when there are no more pages.
    next_token: str = ""


def tag_specifications(resource_type: str, tags: Dict[str, str]) -> List[Dict[str, object]]:
    """Build a ``TagSpecifications`` request parameter."""
    return [
        {
            "ResourceType": resource_type,
            "Tags": [{"Key": key, "Value": value} for key, value in tags.items()],
        }
    ]
