"""Per-instance device path bookkeeping.

The attachment code borrows a ``Device`` for one attach or detach call and
hands it back through ``release()``. A device whose attach did not
converge is tainted instead, so its path is not handed out to another
volume until the caller forces the release. The same volume asking again
gets the tainted path back as a fresh allocation, unless the instance's
block device mappings already show it there.
"""

import abc
import threading
from typing import Any, Callable, Dict, Optional, Set, Tuple

from oslo_log import log as logging

from .allocator import NameAllocator

LOG = logging.getLogger(__name__)

DEVICE_PATH_PREFIX = "/dev/xvd"
_MAPPING_PREFIXES = ("/dev/xvd", "/dev/sd")


class Device:
    """Binding between a device path, an instance and a volume.

    Usable as a context manager; leaving the block releases the device
    without force.
    """

    def __init__(
        self,
        instance_id: str,
        volume_id: str,
        path: str,
        is_already_assigned: bool,
        release_func: Optional[Callable[["Device"], None]] = None,
        taint_func: Optional[Callable[["Device"], None]] = None,
    ):
        self.instance_id = instance_id
        self.volume_id = volume_id
        self.path = path
        self.is_already_assigned = is_already_assigned
        self.is_tainted = False
        self._release_func = release_func
        self._taint_func = taint_func

    def __repr__(self):
        return (
            f"Device(instance_id={self.instance_id!r}, volume_id={self.volume_id!r}, "
            f"path={self.path!r}, is_already_assigned={self.is_already_assigned}, "
            f"is_tainted={self.is_tainted})"
        )

    def taint(self) -> None:
        """Mark the device suspect; a non-forced release becomes a no-op."""
        self.is_tainted = True

    def release(self, force: bool = False) -> None:
        """Return the device path to the allocator.

        A tainted device released without force is kept and reported to the
        owner as tainted.

        Args:
            force: Release even if the device is tainted
        """
        if self.is_tainted and not force:
            LOG.debug("Keeping tainted device %s for volume %s", self.path, self.volume_id)
            if self._taint_func is not None:
                self._taint_func(self)
            return
        if self._release_func is not None:
            self._release_func(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class DeviceManager(abc.ABC):
    """Allocates device paths for volumes attached to an instance."""

    @abc.abstractmethod
    def new_device(self, instance: Dict[str, Any], volume_id: str) -> Device:
        """Return the existing binding for the volume or allocate a new one."""

    @abc.abstractmethod
    def get_device(self, instance: Dict[str, Any], volume_id: str) -> Device:
        """Look up the existing binding without allocating.

        When none exists the returned device has an empty path and
        ``is_already_assigned`` set to False.
        """


class InFlightAttachments:
    """Device names handed out but not yet confirmed by the provider."""

    def __init__(self):
        self._attachments: Dict[str, Dict[str, str]] = {}
        self._tainted: Set[Tuple[str, str]] = set()

    def add(self, instance_id: str, volume_id: str, name: str) -> None:
        self._attachments.setdefault(instance_id, {})[name] = volume_id
        self._tainted.discard((instance_id, name))

    def delete(self, instance_id: str, name: str) -> None:
        self._tainted.discard((instance_id, name))
        names = self._attachments.get(instance_id)
        if not names:
            return
        names.pop(name, None)
        if not names:
            del self._attachments[instance_id]

    def taint(self, instance_id: str, volume_id: str, name: str) -> None:
        if self.get_volume(instance_id, name) == volume_id:
            self._tainted.add((instance_id, name))

    def is_tainted(self, instance_id: str, name: str) -> bool:
        return (instance_id, name) in self._tainted

    def get_names(self, instance_id: str) -> Dict[str, str]:
        return dict(self._attachments.get(instance_id, {}))

    def get_volume(self, instance_id: str, name: str) -> Optional[str]:
        return self._attachments.get(instance_id, {}).get(name)


def _strip_device_prefix(device_name: str) -> str:
    for prefix in _MAPPING_PREFIXES:
        if device_name.startswith(prefix):
            return device_name[len(prefix):]
    return device_name


class InMemoryDeviceManager(DeviceManager):
    """Device manager keeping in-flight allocations in process memory.

    Names in use are the instance's block device mappings plus the names
    handed out by this manager and not yet released. An in-flight name
    left tainted by a failed attach only counts as assigned once the
    mappings confirm it.
    """

    def __init__(self, allocator: Optional[NameAllocator] = None):
        self.allocator = allocator or NameAllocator()
        self.in_flight = InFlightAttachments()
        self._lock = threading.Lock()

    def new_device(self, instance: Dict[str, Any], volume_id: str) -> Device:
        instance_id = instance["InstanceId"]
        with self._lock:
            mapped = self._mapped_names(instance)
            name = self._name_for_volume(mapped, volume_id)
            if name:
                return self._device(instance_id, volume_id, name, True)

            in_flight = self.in_flight.get_names(instance_id)
            name = self._name_for_volume(in_flight, volume_id)
            if name and not self.in_flight.is_tainted(instance_id, name):
                return self._device(instance_id, volume_id, name, True)
            if name:
                LOG.info(
                    "Retrying attach of volume %s on %s at tainted device %s%s",
                    volume_id,
                    instance_id,
                    DEVICE_PATH_PREFIX,
                    name,
                )
            else:
                in_use = dict(mapped)
                in_use.update(in_flight)
                name = self.allocator.get_next(in_use)
                LOG.debug("Allocated device %s%s on %s for volume %s", DEVICE_PATH_PREFIX, name, instance_id, volume_id)
            self.in_flight.add(instance_id, volume_id, name)
            return self._device(instance_id, volume_id, name, False)

    def get_device(self, instance: Dict[str, Any], volume_id: str) -> Device:
        instance_id = instance["InstanceId"]
        with self._lock:
            in_use = self._mapped_names(instance)
            in_use.update(self.in_flight.get_names(instance_id))
            name = self._name_for_volume(in_use, volume_id)
            if name:
                return self._device(instance_id, volume_id, name, True)
            return Device(instance_id, volume_id, "", False, self._release, self._taint)

    def _device(self, instance_id: str, volume_id: str, name: str, is_already_assigned: bool) -> Device:
        return Device(
            instance_id, volume_id, DEVICE_PATH_PREFIX + name, is_already_assigned, self._release, self._taint
        )

    @staticmethod
    def _mapped_names(instance: Dict[str, Any]) -> Dict[str, str]:
        mapped: Dict[str, str] = {}
        for mapping in instance.get("BlockDeviceMappings") or []:
            device_name = mapping.get("DeviceName")
            if not device_name:
                continue
            mapped[_strip_device_prefix(device_name)] = (mapping.get("Ebs") or {}).get("VolumeId", "")
        return mapped

    @staticmethod
    def _name_for_volume(names: Dict[str, str], volume_id: str) -> str:
        for name, assigned in names.items():
            if assigned == volume_id:
                return name
        return ""

    def _taint(self, device: Device) -> None:
        if not device.path.startswith(DEVICE_PATH_PREFIX):
            return
        with self._lock:
            self.in_flight.taint(device.instance_id, device.volume_id, device.path[len(DEVICE_PATH_PREFIX):])

    def _release(self, device: Device) -> None:
        if not device.path.startswith(DEVICE_PATH_PREFIX):
            return
        name = device.path[len(DEVICE_PATH_PREFIX):]
        with self._lock:
            assigned = self.in_flight.get_volume(device.instance_id, name)
            if assigned is None:
                # Not in flight, nothing to release.
                return
            if assigned != device.volume_id:
                LOG.warning(
                    "Not releasing device %s on %s: assigned to volume %s, not %s",
                    device.path,
                    device.instance_id,
                    assigned,
                    device.volume_id,
                )
                return
            self.in_flight.delete(device.instance_id, name)
