"""Installation of Kubernetes bundles for the supported OS and K8s versions."""

from __future__ import annotations

import dataclasses
import logging
import subprocess
from dataclasses import dataclass, field

from byohagent.algo import BaseK8sInstaller, Ubuntu20_4K8s1_22
from byohagent.bundle_downloader import BundleDownloader, BundleType
from byohagent.checks import run_prechecks
from byohagent.errors import (
    BundleInstallError,
    BundleUninstallError,
    DetectOsError,
    InstallerError,
    OsK8sNotSupportedError,
)
from byohagent.os_detector import OsDetector
from byohagent.output import LogPrinter, OutputBuilder, StringPrinter
from byohagent.registry import Registry

_LOGGER = logging.getLogger(__name__)

_UBUNTU_20_04_BUNDLE = "Ubuntu_20.04.1_x86-64"
_UBUNTU_K8S_FILTERS = ("v1.21.*", "v1.22.*", "v1.23.*")


def get_supported_registry(output_builder: OutputBuilder | None) -> Registry:
    """Return a registry with installers for the supported OS and K8s versions."""
    registry = Registry()

    # The bundle path is set once the exact version is known.
    for k8s_filter in _UBUNTU_K8S_FILTERS:
        registry.add_bundle_installer(
            _UBUNTU_20_04_BUNDLE,
            k8s_filter,
            BaseK8sInstaller(
                step_provider=Ubuntu20_4K8s1_22(), output_builder=output_builder
            ),
        )

    # Any patch version of a supported minor release.
    for k8s_filter in _UBUNTU_K8S_FILTERS:
        registry.add_k8s_filter(k8s_filter)

    # Concrete host OS versions handled by the bundle OS.
    registry.add_os_filter("Ubuntu_20.04.*_x86-64", _UBUNTU_20_04_BUNDLE)

    return registry


@dataclass
class Installer:
    """Installs and uninstalls Kubernetes bundles on the detected OS."""

    algo_registry: Registry
    bundle_downloader: BundleDownloader
    detected_os: str
    logger: logging.Logger = field(default_factory=lambda: _LOGGER)

    def install(self, bundle_repo: str, k8s_ver: str) -> None:
        """Install the given Kubernetes version from ``bundle_repo``."""
        algo_installer = self._algo_installer_with_bundle(bundle_repo, k8s_ver)
        try:
            algo_installer.install()
        except Exception as exc:
            raise BundleInstallError() from exc

    def uninstall(self, bundle_repo: str, k8s_ver: str) -> None:
        """Uninstall the given Kubernetes version from ``bundle_repo``."""
        algo_installer = self._algo_installer_with_bundle(bundle_repo, k8s_ver)
        try:
            algo_installer.uninstall()
        except Exception as exc:
            raise BundleUninstallError() from exc

    def _algo_installer_with_bundle(self, bundle_repo: str, k8s_ver: str) -> BaseK8sInstaller:
        self.bundle_downloader.repo_addr = bundle_repo

        algo_installer, os_bundle = self.algo_registry.get_installer(self.detected_os, k8s_ver)
        if algo_installer is None:
            raise OsK8sNotSupportedError()
        self.logger.info("Current OS will be handled as %s", os_bundle)

        # An empty bundle path means preview mode.
        bundle_path = (
            self.bundle_downloader.get_bundle_dir_path(k8s_ver)
            if self.bundle_downloader.download_path
            else ""
        )
        configured = dataclasses.replace(algo_installer, bundle_path=bundle_path)

        self.bundle_downloader.download_or_preview(os_bundle, k8s_ver)
        return configured


def new_installer(
    download_path: str,
    bundle_type: BundleType | str,
    logger: logging.Logger | None = None,
) -> Installer:
    """Return an installer for the current OS that caches bundles under ``download_path``."""
    logger = logger or _LOGGER
    if not download_path:
        raise InstallerError("empty download path")

    try:
        detected_os = OsDetector().detect()
    except (DetectOsError, OSError, subprocess.CalledProcessError) as exc:
        raise DetectOsError() from exc
    logger.info("Detected OS: %s", detected_os)

    if not run_prechecks(logger, detected_os):
        raise InstallerError("precheck failed")

    return new_unchecked(detected_os, bundle_type, download_path, logger, LogPrinter(logger))


def new_unchecked(
    current_os: str,
    bundle_type: BundleType | str,
    download_path: str,
    logger: logging.Logger | None,
    output_builder: OutputBuilder | None,
) -> Installer:
    """Return an installer without OS detection or prechecks.

    An empty ``download_path`` gives an installer in preview mode, which
    reports every step without running it.
    """
    logger = logger or _LOGGER
    downloader = BundleDownloader(bundle_type, "", download_path, logger)

    registry = get_supported_registry(output_builder)
    if not registry.list_k8s(current_os):
        raise OsK8sNotSupportedError()

    return Installer(
        algo_registry=registry,
        bundle_downloader=downloader,
        detected_os=current_os,
        logger=logger,
    )


def list_supported_os() -> tuple[list[str], list[str]]:
    """Return the supported OS filters and their bundle OSes."""
    return get_supported_registry(None).list_os()


def list_supported_k8s(os_name: str) -> list[str]:
    """Return the K8s versions supported for a bundle or host OS."""
    return get_supported_registry(None).list_k8s(os_name)


def preview_changes(os_name: str, k8s_ver: str) -> tuple[str, str]:
    """Describe the install and uninstall changes without applying them."""
    previewer = StringPrinter(msg_fmt="# %s")
    registry = get_supported_registry(previewer)
    algo_installer, _ = registry.get_installer(os_name, k8s_ver)
    if algo_installer is None:
        raise OsK8sNotSupportedError()

    algo_installer.install()
    install = str(previewer)
    previewer.steps.clear()
    algo_installer.uninstall()
    uninstall = str(previewer)
    return install, uninstall