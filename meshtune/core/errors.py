"""Domain-specific errors for meshtune."""

from __future__ import annotations


class MeshtuneError(Exception):
    """Base error for meshtune."""


class TunableValidationError(MeshtuneError):
    """Raised when a tunable file does not conform to schema or semantics."""


class TunableLoadError(MeshtuneError):
    """Raised when loading tunable sources fails."""


class TunableResolutionError(MeshtuneError):
    """Raised when a tunable name or abbreviation cannot be found."""


class SessionError(MeshtuneError):
    """Raised when the mesh interface cannot be resolved at startup."""


class SettingFailedError(MeshtuneError):
    """Raised when a get/set invocation ends without success."""


class InvalidValueError(SettingFailedError):
    """Raised when a supplied value is not one of the allowed literals."""

    def __init__(self, value: str, allowed: tuple[str, ...] = ()) -> None:
        self.value = value
        self.allowed = allowed
        super().__init__(f"the supplied argument is invalid: {value}")


class PermissionDeniedError(SettingFailedError):
    """Raised when a write is attempted without root privileges."""


class TransportError(SettingFailedError):
    """Raised when the kernel reports a netlink error other than EOPNOTSUPP."""

    def __init__(self, message: str, code: int) -> None:
        self.code = code
        super().__init__(message)


class SysfsError(SettingFailedError):
    """Raised when the sysfs attribute file cannot be read or written."""
