"""Running of cloud-init runcmd commands through bash."""

from __future__ import annotations

import subprocess


class CmdRunner:
    """Runs shell commands, passing their output through."""

    def run_cmd(self, cmd: str) -> None:
        """Run ``cmd`` with ``/bin/bash -c``; raise CalledProcessError on failure."""
        subprocess.run(["/bin/bash", "-c", cmd], check=True)