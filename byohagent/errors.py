"""Errors raised by the installer."""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for installer errors."""

    default_message = "installer error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class DetectOsError(InstallerError):
    """The operating system could not be detected."""

    default_message = "Error detecting OS"


class OsK8sNotSupportedError(InstallerError):
    """The OS and Kubernetes version pair is not supported."""

    default_message = "No k8s support for OS"


class BundleDownloadError(InstallerError):
    """The bundle could not be downloaded."""

    default_message = "Error downloading bundle"


class BundleExtractError(InstallerError):
    """The bundle could not be extracted."""

    default_message = "Error extracting bundle"


class BundleInstallError(InstallerError):
    """The bundle could not be installed."""

    default_message = "Error installing bundle"


class BundleUninstallError(InstallerError):
    """The bundle could not be uninstalled."""

    default_message = "Error uninstalling bundle"