"""Exception types raised by the deploy pipeline."""

from typing import Optional


class DeployError(Exception):
    """Base class for unrecoverable deploy failures."""
    pass


class ConfigError(DeployError):
    """Configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


class DiscoveryError(DeployError):
    """Local source root does not exist or cannot be read."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(f"{message}: {path}")


class UploadError(DeployError):
    """A single file upload failed; wraps the storage client error."""

    def __init__(self, local_path: str, destination: str, cause: BaseException):
        self.local_path = local_path
        self.destination = destination
        self.cause = cause
        super().__init__(
            f"Failed to upload {local_path} to {destination}: {type(cause).__name__}: {cause}"
        )
