"""Installer steps that run shell commands, and helpers that build them."""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

_DEFAULT_SHELL = "bash"


class Step(ABC):
    """A step that can be applied and rolled back."""

    @abstractmethod
    def do(self) -> None:
        """Apply the step."""

    @abstractmethod
    def undo(self) -> None:
        """Roll the step back."""


@dataclass
class ShellStep(Step):
    """A step whose apply and rollback are shell commands.

    ``installer`` supplies ``bundle_path`` and ``output_builder``; an empty
    bundle path means preview mode, where commands are reported but not run.
    """

    installer: Any
    desc: str
    do_cmd: str
    undo_cmd: str

    def do(self) -> None:
        self.installer.output_builder.msg("Installing: " + self.desc)
        self._run(self.do_cmd)

    def undo(self) -> None:
        self.installer.output_builder.msg("Uninstalling: " + self.desc)
        self._run(self.undo_cmd)

    def _run(self, command: str) -> None:
        output = self.installer.output_builder
        shell = shutil.which(_DEFAULT_SHELL) or _DEFAULT_SHELL
        output.cmd(f"{shell} -c {command}")

        if not self.installer.bundle_path:
            return

        try:
            result = subprocess.run(
                [shell, "-c", command], capture_output=True, text=True, check=False
            )
        except OSError as exc:
            output.err(str(exc))
            raise

        # Output on stderr alone is not a failure: many tools warn there.
        if result.stderr:
            output.err(result.stderr)

        try:
            result.check_returncode()
        except subprocess.CalledProcessError as exc:
            output.err(str(exc))
            raise

        if result.stdout:
            output.out(result.stdout)


def new_apt_step(installer: Any, apt_pkg: str) -> ShellStep:
    """Return a step installing a .deb package from the bundle."""
    return new_apt_step_ex(installer, apt_pkg, False)


def new_apt_step_optional(installer: Any, apt_pkg: str) -> ShellStep:
    """Return a step installing a .deb package only if it is in the bundle."""
    return new_apt_step_ex(installer, apt_pkg, True)


def new_apt_step_ex(installer: Any, apt_pkg: str, optional: bool) -> ShellStep:
    """Return a step installing (and holding) or purging a .deb package."""
    pkg_name = apt_pkg.split(".")[0]
    pkg_path = os.path.join(installer.bundle_path, apt_pkg)

    def wrap(cmd: str) -> str:
        return f"if [ -f {pkg_path} ]; then {cmd}; fi" if optional else cmd

    # Holding the package keeps it from being upgraded or removed behind our back.
    do_cmd = f"dpkg --install '{pkg_path}' && apt-mark hold {pkg_name}"
    undo_cmd = f"dpkg --purge {pkg_name}"

    return ShellStep(
        installer=installer,
        desc=pkg_name,
        do_cmd=wrap(do_cmd),
        undo_cmd=wrap(undo_cmd),
    )