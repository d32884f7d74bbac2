"""Provider error classification.

Translates EC2 error codes into the small set of kinds the rest of the
package reasons about. Error codes are documented at
https://docs.aws.amazon.com/AWSEC2/latest/APIReference/errors-overview.html
"""

import enum
from typing import Any, Optional

from .exceptions import ProviderError


class ErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INCORRECT_STATE = "incorrect_state"
    INCORRECT_MODIFICATION_STATE = "incorrect_modification_state"
    UNCLASSIFIED = "unclassified"


# Volume does not exist.
VOLUME_NOT_FOUND = "InvalidVolume.NotFound"
# Snapshot does not exist.
SNAPSHOT_NOT_FOUND = "InvalidSnapshot.NotFound"
# Instance does not exist.
INSTANCE_NOT_FOUND = "InvalidInstanceID.NotFound"
# Detach of a volume from an instance it is not attached to.
ATTACHMENT_NOT_FOUND = "InvalidAttachment.NotFound"
VOLUME_IN_USE = "VolumeInUse"
# Resource is not in a correct state for the request.
INCORRECT_STATE = "IncorrectState"
# Volume is currently being modified.
INCORRECT_MODIFICATION_STATE = "IncorrectModificationState"

_CODE_KINDS = {
    VOLUME_NOT_FOUND: ErrorKind.NOT_FOUND,
    SNAPSHOT_NOT_FOUND: ErrorKind.NOT_FOUND,
    INSTANCE_NOT_FOUND: ErrorKind.NOT_FOUND,
    ATTACHMENT_NOT_FOUND: ErrorKind.NOT_FOUND,
    VOLUME_IN_USE: ErrorKind.ALREADY_EXISTS,
    INCORRECT_STATE: ErrorKind.INCORRECT_STATE,
    INCORRECT_MODIFICATION_STATE: ErrorKind.INCORRECT_MODIFICATION_STATE,
}


def error_code(exc: BaseException) -> Optional[str]:
    """Return the provider error code carried by ``exc``, if any.

    botocore's ``ClientError`` keeps the parsed error body in
    ``exc.response["Error"]["Code"]``. Anything that does not look like
    that yields ``None``.
    """
    response: Any = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    error = response.get("Error")
    if not isinstance(error, dict):
        return None
    code = error.get("Code")
    if not isinstance(code, str) or not code:
        return None
    return code


def classify(exc: BaseException) -> ErrorKind:
    """Classify a provider exception into an ``ErrorKind``."""
    code = error_code(exc)
    if code is None:
        return ErrorKind.UNCLASSIFIED
    return _CODE_KINDS.get(code, ErrorKind.UNCLASSIFIED)


def is_provider_error(exc: BaseException, code: str) -> bool:
    """Whether ``exc`` is a provider error with exactly ``code``."""
    return error_code(exc) == code


def wrap_provider_error(exc: BaseException, operation: str, resource_id: str = "") -> ProviderError:
    """Build a ``ProviderError`` carrying call context for ``exc``.

    The caller is expected to ``raise ... from exc``.
    """
    return ProviderError(
        operation=operation,
        resource_id=resource_id,
        code=error_code(exc),
        details=str(exc),
    )
