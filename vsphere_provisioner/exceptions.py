"""Custom exceptions for vsphere-provisioner."""


class ProvisionError(RuntimeError):
    """Base class for every error the provisioning workflow reports."""


class ConfigError(ProvisionError):
    """Raised for malformed settings or a missing local file."""


class EndpointConnectionError(ProvisionError):
    """Raised when the management endpoint cannot be reached or rejects the login."""


class NotFoundError(ProvisionError):
    """Raised when an inventory object is missing or ambiguous."""


class TaskError(ProvisionError):
    """Raised when a remote task finishes in the error state."""


class UploadError(ProvisionError):
    """Raised when a file transfer to the datastore fails."""


class DeviceError(ProvisionError):
    """Raised when a device cannot be built or the platform rejects its addition."""


class NameCollisionError(ProvisionError):
    """Raised when a persistent disk would reuse the name of an attached disk.

    Recoverable: the workflow logs it and skips the step.
    """
