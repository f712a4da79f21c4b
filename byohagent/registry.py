"""Registry mapping host OS and Kubernetes versions to bundle installers."""

from __future__ import annotations

import re
from typing import Any


class Registry:
    """Associates (OS bundle, K8s version) pairs with installers.

    OS filters map a concrete host OS to a bundle OS; K8s filters map a
    concrete Kubernetes version to the pattern a bundle was registered under.
    Filters are regular expressions matched anywhere in the value.
    """

    def __init__(self) -> None:
        self._installers: dict[str, dict[str, Any]] = {}
        self._os_filters: list[tuple[str, str]] = []
        self._k8s_filters: list[str] = []

    def add_bundle_installer(self, os_bundle: str, k8s_ver: str, installer: Any) -> None:
        """Register an installer; registering the same pair twice is a bug."""
        by_k8s = self._installers.setdefault(os_bundle, {})
        if k8s_ver in by_k8s:
            raise ValueError(f"{os_bundle} {k8s_ver} already exists")
        by_k8s[k8s_ver] = installer

    def add_os_filter(self, os_filter: str, os_bundle: str) -> None:
        """Map host OS names matching ``os_filter`` to ``os_bundle``."""
        self._os_filters.append((os_filter, os_bundle))

    def add_k8s_filter(self, k8s_filter: str) -> None:
        """Add a Kubernetes version pattern."""
        self._k8s_filters.append(k8s_filter)

    def list_os(self) -> tuple[list[str], list[str]]:
        """Return the OS filters and their bundle OSes, in insertion order."""
        return (
            [os_filter for os_filter, _ in self._os_filters],
            [os_bundle for _, os_bundle in self._os_filters],
        )

    def list_k8s(self, os_bundle_host: str) -> list[str]:
        """Return K8s versions for a bundle OS or for a host OS."""
        if os_bundle_host in self._installers:
            return list(self._installers[os_bundle_host])
        return list(self._installers.get(self._resolve_os(os_bundle_host), {}))

    def get_installer(self, os_host: str, k8s_ver: str) -> tuple[Any, str]:
        """Return the installer (or None) and the bundle OS for a host."""
        os_bundle = self._resolve_os(os_host)
        k8s_bundle = self._resolve_k8s(k8s_ver)
        return self._installers.get(os_bundle, {}).get(k8s_bundle), os_bundle

    def _resolve_os(self, os_name: str) -> str:
        return next(
            (bundle for pattern, bundle in self._os_filters if re.search(pattern, os_name)),
            "",
        )

    def _resolve_k8s(self, k8s: str) -> str:
        return next((pattern for pattern in self._k8s_filters if re.search(pattern, k8s)), "")