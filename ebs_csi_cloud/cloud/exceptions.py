"""Exceptions raised by the cloud orchestration layer."""


class CloudException(Exception):
    """Base exception for cloud errors."""

    message = "An unknown exception occurred."

    def __init__(self, message=None, **kwargs):
        """Initialize exception with optional custom message."""
        self.kwargs = kwargs
        if message:
            self.message = message
        try:
            text = self.message % kwargs
        except (KeyError, TypeError, ValueError):
            text = self.message
        super(CloudException, self).__init__(text)


class ConfigurationError(CloudException):
    """Cloud session cannot be built from the given configuration."""

    message = "Invalid cloud configuration: %(details)s"


class NotFound(CloudException):
    """Generic resource not found error.

    Delete operations raise this to signal the resource is already gone;
    the caller decides whether that is acceptable.
    """

    message = "Resource %(resource_id)s was not found"


class VolumeNotFound(NotFound):
    message = "Volume %(volume_id)s was not found"


class SnapshotNotFound(NotFound):
    message = "Snapshot %(snapshot_id)s was not found"


class InstanceNotFound(NotFound):
    message = "Instance %(instance_id)s was not found"


class AlreadyExists(CloudException):
    message = "Resource %(resource_id)s already exists"


class VolumeInUse(AlreadyExists):
    """Volume is attached elsewhere or an attach is already in progress."""

    message = "Volume %(volume_id)s is already in use"


class MultipleFound(CloudException):
    """More than one resource matched a name or an exact ID."""

    message = "Multiple resources found for %(resource_id)s"


class MultipleDisks(MultipleFound):
    message = "Multiple disks with same name %(resource_id)s"


class MultipleSnapshots(MultipleFound):
    message = "Multiple snapshots with the same name %(resource_id)s found"


class MultipleInstances(MultipleFound):
    message = "Found %(count)d instances with ID %(resource_id)s"


class SizeConflict(CloudException):
    message = "There is already a disk named %(name)s with a different size"


class DiskExistsDiffSize(SizeConflict):
    """Name is already taken by a differently sized volume."""

    message = "There is already a disk named %(name)s with size %(actual)s GiB, requested %(requested)s GiB"


class InvalidArgument(CloudException):
    message = "Invalid argument: %(details)s"


class InvalidVolumeType(InvalidArgument):
    message = "Invalid AWS VolumeType %(volume_type)r"


class InvalidMaxResults(InvalidArgument):
    message = "MaxResults parameter must be 0 or greater than or equal to 5, got %(max_results)s"


class WaitTimeout(CloudException):
    """Poll schedule exhausted before the condition was met."""

    message = "Timed out waiting for %(what)s"


class Cancelled(CloudException):
    """Caller cancelled the request context."""

    message = "Operation cancelled"


class DeadlineExceeded(Cancelled):
    message = "Operation deadline exceeded"


class ProviderError(CloudException):
    """Unclassified failure reported by the provider or the transport."""

    message = "%(operation)s failed for %(resource_id)s: %(details)s"

    def __init__(self, message=None, operation="request", resource_id="", code=None, details="", **kwargs):
        self.operation = operation
        self.resource_id = resource_id
        self.code = code
        super(ProviderError, self).__init__(
            message,
            operation=operation,
            resource_id=resource_id,
            code=code,
            details=details,
            **kwargs
        )
