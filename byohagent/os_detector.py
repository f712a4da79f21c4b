"""Detection of the host operating system from hostnamectl output."""

from __future__ import annotations

import re
import subprocess
from typing import Callable

from byohagent.errors import DetectOsError

OS_NOT_DETECTED = "could not detect OS correctly"

_OS_LINE = "Operating System: "
_ARCH_LINE = "Architecture: "

_OS_RE = re.compile(re.escape(_OS_LINE) + r"[a-zA-Z]+[ a-zA-Z]*[a-zA-Z]+", re.ASCII)
_VER_RE = re.compile(re.escape(_OS_LINE) + r"[a-zA-Z]+[ a-zA-Z]* (\d+(\.\d+)*)", re.ASCII)
_ARCH_RE = re.compile(re.escape(_ARCH_LINE) + r"[a-zA-Z]+[ a-zA-Z0-9-]*", re.ASCII)


def normalize_os_name(os_name: str, ver: str, arch: str) -> str:
    """Return ``<os>_<ver>_<arch>`` with spaces replaced by underscores."""
    return f"{os_name}_{ver}_{arch}".replace(" ", "_")


def parse_hostnamectl(system_info: str) -> tuple[str, str, str]:
    """Extract OS name, version and architecture; missing parts are empty."""
    os_name = ver = arch = ""

    os_match = _OS_RE.search(system_info)
    if os_match:
        os_name = system_info[os_match.start() + len(_OS_LINE) : os_match.end()]

    ver_match = _VER_RE.search(system_info)
    if ver_match and os_match:
        ver = system_info[os_match.end() + 1 : ver_match.end()]

    arch_match = _ARCH_RE.search(system_info)
    if arch_match:
        arch = system_info[arch_match.start() + len(_ARCH_LINE) : arch_match.end()]

    return os_name, ver, arch


def _hostnamectl() -> str:
    result = subprocess.run(["hostnamectl"], capture_output=True, text=True, check=True)
    return result.stdout


class OsDetector:
    """Detects the host OS once and caches the normalized name."""

    def __init__(self) -> None:
        self._cached = ""

    def detect(self) -> str:
        """Return the normalized OS name, e.g. ``Ubuntu_20.04.3_x86-64``."""
        return self.detect_by_hostnamectl(_hostnamectl)

    def detect_by_hostnamectl(self, fetch: Callable[[], str]) -> str:
        """Detect the OS from the text returned by ``fetch``."""
        if self._cached:
            return self._cached

        os_name, ver, arch = parse_hostnamectl(fetch())
        if not (os_name and ver and arch):
            raise DetectOsError(OS_NOT_DETECTED)

        self._cached = normalize_os_name(os_name, ver, arch)
        return self._cached