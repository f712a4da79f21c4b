import subprocess
from types import SimpleNamespace

import pytest

from byohagent.output import StringPrinter
from byohagent.steps import ShellStep, new_apt_step, new_apt_step_ex, new_apt_step_optional


def _installer(bundle_path=""):
    return SimpleNamespace(bundle_path=bundle_path, output_builder=StringPrinter())


def test_preview_reports_message_and_command_only():
    inst = _installer()
    step = ShellStep(inst, "SWAP", "echo do", "echo undo")
    step.do()
    assert len(inst.output_builder.steps) == 2
    assert inst.output_builder.steps[0] == "Installing: SWAP"
    assert inst.output_builder.steps[1].endswith(" -c echo do")


def test_preview_undo_reports_uninstalling():
    inst = _installer()
    step = ShellStep(inst, "SWAP", "echo do", "echo undo")
    step.undo()
    assert inst.output_builder.steps[0] == "Uninstalling: SWAP"
    assert inst.output_builder.steps[1].endswith(" -c echo undo")


def test_real_run_captures_stdout(tmp_path):
    inst = _installer(str(tmp_path))
    ShellStep(inst, "ECHO", "echo hello", "true").do()
    assert inst.output_builder.steps[-1] == "hello\n"


def test_real_run_stderr_is_reported_but_not_fatal(tmp_path):
    inst = _installer(str(tmp_path))
    ShellStep(inst, "WARN", "echo oops >&2", "true").do()
    assert "oops\n" in inst.output_builder.steps


def test_real_run_failure_raises(tmp_path):
    inst = _installer(str(tmp_path))
    step = ShellStep(inst, "FAIL", "exit 3", "true")
    with pytest.raises(subprocess.CalledProcessError) as info:
        step.do()
    assert info.value.returncode == 3


def test_real_run_side_effect(tmp_path):
    target = tmp_path / "marker"
    inst = _installer(str(tmp_path))
    ShellStep(inst, "TOUCH", f"touch '{target}'", f"rm -f '{target}'").do()
    assert target.exists()
    ShellStep(inst, "TOUCH", f"touch '{target}'", f"rm -f '{target}'").undo()
    assert not target.exists()


def test_apt_step_commands():
    inst = _installer()
    step = new_apt_step(inst, "kubectl.deb")
    assert step.desc == "kubectl"
    assert step.do_cmd == "dpkg --install 'kubectl.deb' && apt-mark hold kubectl"
    assert step.undo_cmd == "dpkg --purge kubectl"


def test_apt_step_uses_bundle_path():
    inst = _installer("/bundle")
    step = new_apt_step_ex(inst, "kubeadm.deb", False)
    assert "'/bundle/kubeadm.deb'" in step.do_cmd
    assert step.do_cmd.endswith("apt-mark hold kubeadm")


def test_optional_apt_step_is_conditional():
    inst = _installer("/bundle")
    plain = new_apt_step(inst, "cri-tools.deb")
    optional = new_apt_step_optional(inst, "cri-tools.deb")
    prefix = "if [ -f /bundle/cri-tools.deb ]; then "
    assert optional.do_cmd == prefix + plain.do_cmd + "; fi"
    assert optional.undo_cmd == prefix + plain.undo_cmd + "; fi"