"""Device path allocation for volume attachments."""

from .allocator import NameAllocator, NoDeviceNameAvailable
from .manager import DEVICE_PATH_PREFIX, Device, DeviceManager, InMemoryDeviceManager

__all__ = [
    "DEVICE_PATH_PREFIX",
    "Device",
    "DeviceManager",
    "InMemoryDeviceManager",
    "NameAllocator",
    "NoDeviceNameAvailable",
]
