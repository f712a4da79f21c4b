"""Download of BYOH bundles from an OCI repository into a local cache."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from byohagent.errors import BundleDownloadError, BundleExtractError

DOWNLOAD_PATH_PERMISSIONS = 0o777

_KNOWN_ERRORS: dict[str, type[Exception]] = {
    "no such host": BundleDownloadError,
    "connection timed out": BundleDownloadError,
    "temporary failure in name resolution": BundleDownloadError,
    "no space left on device": BundleExtractError,
}


class BundleType(str, Enum):
    """Kinds of bundles that can be downloaded."""

    K8S = "k8s"


def get_bundle_name(normalized_os_version: str) -> str:
    """Return the bundle name for an OS, in lower case."""
    return f"byoh-bundle-{normalized_os_version}_k8s".lower()


def convert_error(err: Exception | None) -> Exception | None:
    """Map known download failures to installer errors; pass others through."""
    if err is None:
        return None
    text = str(err).lower()
    for suffix, error_type in _KNOWN_ERRORS.items():
        if text.endswith(suffix):
            return error_type()
    return err


@dataclass
class BundleDownloader:
    """Downloads bundles from ``repo_addr`` into ``download_path``."""

    bundle_type: BundleType | str
    repo_addr: str
    download_path: str
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def __post_init__(self) -> None:
        self.bundle_type = BundleType(self.bundle_type)

    def download(self, normalized_os_version: str, k8s_version: str) -> None:
        """Download the bundle with imgpkg unless it is already cached."""
        self.download_from_repo(normalized_os_version, k8s_version, self._download_by_imgpkg)

    def download_from_repo(
        self,
        normalized_os_version: str,
        k8s_version: str,
        download_by_tool: Callable[[str, str], None],
    ) -> None:
        """Download the bundle with ``download_by_tool(address, directory)``.

        The download goes to a temporary directory that is renamed into
        place on success. Nothing is downloaded on a cache hit.
        """
        repo_path = self._bundle_path_with_repo()
        try:
            os.makedirs(repo_path, mode=DOWNLOAD_PATH_PERMISSIONS, exist_ok=True)
            bundle_dir = self.get_bundle_dir_path(k8s_version)
            if os.path.isdir(bundle_dir):
                self.logger.info("Cache hit: %s", bundle_dir)
                return
            self.logger.info("Cache miss: %s", bundle_dir)

            temp_dir = tempfile.mkdtemp(prefix="tempBundle", dir=repo_path)
            try:
                address = self.get_bundle_addr(normalized_os_version, k8s_version)
                try:
                    download_by_tool(address, temp_dir)
                except Exception as exc:
                    converted = convert_error(exc)
                    if converted is exc:
                        raise
                    raise converted from exc
                os.rename(temp_dir, bundle_dir)
            finally:
                shutil.rmtree(temp_dir, ignore_errors=True)
        finally:
            # Removes the repo directory only if nothing ended up in it.
            try:
                os.rmdir(repo_path)
            except OSError as exc:
                self.logger.debug("Directory %s not removed: %s", repo_path, exc)

    def download_or_preview(self, os_name: str, k8s_version: str) -> None:
        """Download the bundle, or do nothing in preview mode (no download path)."""
        if not self.download_path:
            self.logger.info("Running in preview mode, skip bundle download")
            return
        self.download(os_name, k8s_version)

    def get_bundle_dir_path(self, k8s_version: str) -> str:
        """Return the directory that holds the bundle for a K8s version."""
        # A flat name so the temp directory can be renamed to it atomically;
        # "-" rather than ":" keeps the name valid everywhere.
        base = os.path.join(self._bundle_path_with_repo(), BundleType(self.bundle_type).value)
        return f"{base}-{k8s_version}"

    def get_bundle_addr(self, normalized_os_version: str, k8s_version: str) -> str:
        """Return the full repository address of the bundle."""
        return f"{self.repo_addr}/{get_bundle_name(normalized_os_version)}:{k8s_version}"

    def _bundle_path_with_repo(self) -> str:
        return os.path.normpath(
            os.path.join(self.download_path, self.repo_addr.replace("/", "."))
        )

    def _download_by_imgpkg(self, bundle_addr: str, bundle_dir: str) -> None:
        self.logger.info("Downloading bundle from %s", bundle_addr)
        result = subprocess.run(
            ["imgpkg", "pull", "--recursive", "-i", bundle_addr, "-o", bundle_dir],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            message = result.stderr.strip() or f"imgpkg exited with status {result.returncode}"
            raise RuntimeError(message)