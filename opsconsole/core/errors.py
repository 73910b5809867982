"""Exception types shared across OpsConsole."""

from __future__ import annotations


class OpsConsoleError(Exception):
    """Base class for OpsConsole errors."""


class PlatformAPIError(OpsConsoleError):
    """An outbound call to the commerce or fulfillment platform failed."""

    def __init__(self, platform: str, message: str, status_code: int | None = None):
        self.platform = platform
        self.status_code = status_code
        detail = f"{platform} API error"
        if status_code is not None:
            detail += f" {status_code}"
        super().__init__(f"{detail}: {message}")


class CacheCorruptionError(OpsConsoleError):
    """The order change cache could not be read or parsed."""


class JobAlreadyRunningError(OpsConsoleError):
    """A change detection run is already in progress."""

    def __init__(self) -> None:
        super().__init__("Job is already running")


class VariantNotFoundError(OpsConsoleError, KeyError):
    """The requested variant is not part of the loaded catalog."""

    def __init__(self, variant_id: str):
        self.variant_id = variant_id
        super().__init__(f"Variant {variant_id} not found")

    def __str__(self) -> str:
        return self.args[0]
