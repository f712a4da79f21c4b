"""Kubernetes install/uninstall algorithm built from ordered steps."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from byohagent.output import OutputBuilder
from byohagent.steps import ShellStep, Step, new_apt_step, new_apt_step_optional


class K8sStepProvider(ABC):
    """Provides the OS-specific steps for installing Kubernetes."""

    def get_steps(self, installer: "BaseK8sInstaller") -> list[Step]:
        """Return the steps in the order they must be applied."""
        # Order matters: kernel modules and forwarding before kubeadm,
        # cri tools before packages that depend on them, containerd running
        # before kubeadm so it is picked as the container engine.
        return [
            self.swap_step(installer),
            self.firewall_step(installer),
            self.kernel_mods_load_step(installer),
            self.os_wide_cfg_update_step(installer),
            self.cri_tools_step(installer),
            self.cri_kubernetes_step(installer),
            self.containerd_step(installer),
            self.containerd_daemon_step(installer),
            self.kubelet_step(installer),
            self.kubectl_step(installer),
            self.kubeadm_step(installer),
        ]

    @abstractmethod
    def swap_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def firewall_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def kernel_mods_load_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def os_wide_cfg_update_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def cri_tools_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def cri_kubernetes_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def containerd_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def containerd_daemon_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def kubeadm_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def kubelet_step(self, installer: "BaseK8sInstaller") -> Step: ...

    @abstractmethod
    def kubectl_step(self, installer: "BaseK8sInstaller") -> Step: ...


@dataclass
class BaseK8sInstaller:
    """Runs a provider's steps, rolling back on failure.

    An empty ``bundle_path`` puts shell steps into preview mode.
    """

    step_provider: K8sStepProvider
    output_builder: OutputBuilder | None = None
    bundle_path: str = ""

    def install(self) -> None:
        """Apply every step; on failure roll back and re-raise."""
        for index, step in enumerate(self.step_provider.get_steps(self)):
            try:
                step.do()
            except Exception:
                self._rollback(index)
                raise

    def uninstall(self) -> None:
        """Undo every step in reverse order."""
        self._rollback(len(self.step_provider.get_steps(self)) - 1)

    def _rollback(self, current_step: int) -> None:
        steps = self.step_provider.get_steps(self)
        for step in reversed(steps[: current_step + 1]):
            try:
                step.undo()
            except Exception as exc:
                # Keep going so that nothing is left behind.
                if self.output_builder is not None:
                    self.output_builder.err(str(exc))


class Ubuntu20_4K8s1_22(K8sStepProvider):
    """Steps for Ubuntu 20.04 with Kubernetes 1.2x."""

    def swap_step(self, installer: BaseK8sInstaller) -> Step:
        return ShellStep(
            installer=installer,
            desc="SWAP",
            do_cmd=r"swapoff -a && sed -ri '/\sswap\s/s/^#?/#/' /etc/fstab",
            undo_cmd=r"swapon -a && sed -ri '/\sswap\s/s/^#?//' /etc/fstab",
        )

    def firewall_step(self, installer: BaseK8sInstaller) -> Step:
        return ShellStep(
            installer=installer,
            desc="FIREWALL",
            do_cmd="ufw disable",
            undo_cmd="ufw enable",
        )

    def kernel_mods_load_step(self, installer: BaseK8sInstaller) -> Step:
        return ShellStep(
            installer=installer,
            desc="KERNEL MODULES",
            do_cmd="modprobe overlay && modprobe br_netfilter",
            undo_cmd="modprobe -r overlay && modprobe -r br_netfilter",
        )

    def os_wide_cfg_update_step(self, installer: BaseK8sInstaller) -> Step:
        conf_path = os.path.join(installer.bundle_path, "conf.tar")
        return ShellStep(
            installer=installer,
            desc="OS CONFIGURATION",
            do_cmd=f"tar -C / -xvf '{conf_path}' && sysctl --system",
            undo_cmd=(
                f"tar tf '{conf_path}' | xargs -n 1 echo '/' | sed 's/ //g' | xargs rm -f"
            ),
        )

    def cri_tools_step(self, installer: BaseK8sInstaller) -> Step:
        return new_apt_step_optional(installer, "cri-tools.deb")

    def cri_kubernetes_step(self, installer: BaseK8sInstaller) -> Step:
        return new_apt_step_optional(installer, "kubernetes-cni.deb")

    def containerd_step(self, installer: BaseK8sInstaller) -> Step:
        tar_path = os.path.join(installer.bundle_path, "containerd.tar")
        undo_cmd = (
            "rm -rf /opt/cni/ && rm -rf /opt/containerd/ && "
            f"tar tf '{tar_path}'"
            " | xargs -n 1 echo '/' | sed 's/ //g'"
            " | grep -e '[^/]$' | xargs rm -f"
        )
        return ShellStep(
            installer=installer,
            desc="CONTAINERD",
            do_cmd=f"tar -C / -xvf '{tar_path}'",
            undo_cmd=undo_cmd,
        )

    def containerd_daemon_step(self, installer: BaseK8sInstaller) -> Step:
        return ShellStep(
            installer=installer,
            desc="CONTAINERD SERVICE",
            do_cmd=(
                "systemctl daemon-reload && systemctl enable containerd"
                " && systemctl start containerd"
            ),
            undo_cmd=(
                "systemctl stop containerd && systemctl disable containerd"
                " && systemctl daemon-reload"
            ),
        )

    def kubeadm_step(self, installer: BaseK8sInstaller) -> Step:
        return new_apt_step(installer, "kubeadm.deb")

    def kubelet_step(self, installer: BaseK8sInstaller) -> Step:
        return new_apt_step(installer, "kubelet.deb")

    def kubectl_step(self, installer: BaseK8sInstaller) -> Step:
        return new_apt_step(installer, "kubectl.deb")