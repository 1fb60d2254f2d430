"""Exceptions raised by kvmctl operations."""


class KvmctlError(Exception):
    """Base class for every failure reported to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArguments(KvmctlError):
    pass


class AlreadyExists(KvmctlError):
    pass


class NotFound(KvmctlError):
    pass


class CommandFailed(KvmctlError):
    """An external tool exited with a non-zero status."""


class DownloadFailed(KvmctlError):
    pass


class DiskCreationFailed(KvmctlError):
    pass


class SeedGenerationFailed(KvmctlError):
    pass


class DomainRegistrationFailed(KvmctlError):
    pass


class ShutdownFailed(KvmctlError):
    pass


class ForceStopFailed(KvmctlError):
    pass


class UndefineFailed(KvmctlError):
    pass


class CleanupFailed(KvmctlError):
    pass


class StorageError(KvmctlError):
    """A file or directory under the kvm root could not be created or read."""
