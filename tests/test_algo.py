import pytest

from byohagent.algo import BaseK8sInstaller, K8sStepProvider, Ubuntu20_4K8s1_22
from byohagent.output import OutputBuilderCounter, StringPrinter
from byohagent.steps import Step

STEPS_NUM = 22


class _RecordingStep(Step):
    def __init__(self, provider, name):
        self.provider = provider
        self.name = name

    def do(self):
        self.provider.do_steps.append(self.name)
        if len(self.provider.do_steps) == self.provider.error_on_step:
            raise RuntimeError("error on step " + self.name)

    def undo(self):
        self.provider.undo_steps.append(self.name)


class _MockUbuntuWithError(K8sStepProvider):
    def __init__(self, error_on_step):
        self.error_on_step = error_on_step
        self.do_steps = []
        self.undo_steps = []

    def _step(self, name):
        return _RecordingStep(self, name)

    def swap_step(self, installer):
        return self._step("swap")

    def firewall_step(self, installer):
        return self._step("firewall")

    def kernel_mods_load_step(self, installer):
        return self._step("kernel")

    def os_wide_cfg_update_step(self, installer):
        return self._step("oscfg")

    def cri_tools_step(self, installer):
        return self._step("critools")

    def cri_kubernetes_step(self, installer):
        return self._step("crik8s")

    def containerd_step(self, installer):
        return self._step("containerd")

    def containerd_daemon_step(self, installer):
        return self._step("containerd-daemon")

    def kubeadm_step(self, installer):
        return self._step("kubeadm")

    def kubelet_step(self, installer):
        return self._step("kubelet")

    def kubectl_step(self, installer):
        return self._step("kubectl")


@pytest.fixture
def counter():
    return OutputBuilderCounter()


@pytest.fixture
def installer(counter):
    return BaseK8sInstaller(step_provider=Ubuntu20_4K8s1_22(), output_builder=counter)


def test_install_counts_each_step(installer, counter):
    installer.install()
    assert counter.log_called_cnt == STEPS_NUM


def test_uninstall_counts_each_step(installer, counter):
    installer.uninstall()
    assert counter.log_called_cnt == STEPS_NUM


def test_error_rolls_back_all_applied_steps():
    mock = _MockUbuntuWithError(error_on_step=5)
    inst = BaseK8sInstaller(step_provider=mock)
    with pytest.raises(RuntimeError):
        inst.install()
    assert len(mock.do_steps) == mock.error_on_step
    assert len(mock.undo_steps) == mock.error_on_step
    assert mock.do_steps == list(reversed(mock.undo_steps))


def test_install_and_uninstall_preview_messages():
    printer = StringPrinter()
    inst = BaseK8sInstaller(step_provider=Ubuntu20_4K8s1_22(), output_builder=printer)
    inst.install()
    install_text = str(printer)
    printer.steps.clear()
    inst.uninstall()
    uninstall_text = str(printer)
    assert "Installing" in install_text and "Uninstalling" not in install_text
    assert "Uninstalling" in uninstall_text and "Installing" not in uninstall_text


def test_step_order_and_uninstall_is_reverse():
    printer = StringPrinter()
    inst = BaseK8sInstaller(step_provider=Ubuntu20_4K8s1_22(), output_builder=printer)
    inst.install()
    installed = [s[len("Installing: "):] for s in printer.steps if s.startswith("Installing: ")]
    printer.steps.clear()
    inst.uninstall()
    removed = [s[len("Uninstalling: "):] for s in printer.steps if s.startswith("Uninstalling: ")]
    assert installed[0] == "SWAP"
    assert installed[-1] == "kubeadm"
    assert removed == list(reversed(installed))


def test_bundle_path_is_used_in_commands():
    inst = BaseK8sInstaller(step_provider=Ubuntu20_4K8s1_22(), bundle_path="/b")
    steps = inst.step_provider.get_steps(inst)
    assert steps[3].do_cmd == "tar -C / -xvf '/b/conf.tar' && sysctl --system"
    assert steps[6].do_cmd == "tar -C / -xvf '/b/containerd.tar'"
    assert len(steps) == STEPS_NUM // 2


def test_undo_errors_are_reported_and_rollback_continues():
    class _FailingUndo(_MockUbuntuWithError):
        def kernel_mods_load_step(self, installer):
            provider = self

            class _Bad(Step):
                def do(self):
                    provider.do_steps.append("kernel")

                def undo(self):
                    raise RuntimeError("undo failed")

            return _Bad()

    mock = _FailingUndo(error_on_step=0)
    printer = StringPrinter()
    BaseK8sInstaller(step_provider=mock, output_builder=printer).uninstall()
    assert printer.steps == ["undo failed"]
    assert len(mock.undo_steps) == STEPS_NUM // 2 - 1
    assert mock.undo_steps[-1] == "swap"