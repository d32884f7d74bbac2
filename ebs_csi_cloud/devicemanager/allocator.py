"""Device name allocation."""

import string
from typing import Collection

from ..cloud.exceptions import CloudException


class NoDeviceNameAvailable(CloudException):
    message = "There are no device names available"


class NameAllocator:
    """Hands out two-letter device name suffixes ``ba`` through ``zz``.

    Suffixes starting with ``a`` are left for the root and instance store
    devices.
    """

    first_letters = string.ascii_lowercase[1:]
    second_letters = string.ascii_lowercase

    def get_next(self, existing: Collection[str]) -> str:
        """Return the first name not present in ``existing``.

        Raises:
            NoDeviceNameAvailable: every name is taken
        """
        for first in self.first_letters:
            for second in self.second_letters:
                name = first + second
                if name not in existing:
                    return name
        raise NoDeviceNameAvailable()
