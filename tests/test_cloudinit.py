import base64
import gzip
import os
import stat

import pytest

from byohagent.cloudinit import ScriptExecutor, decode_content, parse_encoding_scheme
from byohagent.cmd_runner import CmdRunner
from byohagent.file_writer import FileWriter
from byohagent.template_parser import TemplateParser


@pytest.fixture
def executor():
    return ScriptExecutor(
        write_files_executor=FileWriter(),
        run_cmd_executor=CmdRunner(),
        parse_template_executor=TemplateParser({"DefaultNetworkInterfaceName": "eth0"}),
    )


class _Recorder:
    def __init__(self, fail_cmd=False):
        self.calls = []
        self.fail_cmd = fail_cmd

    def mkdir_if_not_exists(self, dir_name):
        self.calls.append(("mkdir", dir_name))

    def write_to_file(self, file):
        self.calls.append(("write", file.path, file.content))

    def run_cmd(self, cmd):
        self.calls.append(("run", cmd))
        if self.fail_cmd:
            raise OSError("boom")


def test_write_files_and_execute_commands(executor, tmp_path):
    file_name = tmp_path / "file-1.txt"
    new_content = " run cmd"
    script = (
        f"write_files:\n- path: {file_name}\ncontent: some-content-1\n"
        f"runCmd:\n- echo -n '{new_content}' > {file_name}"
    )
    result = executor.execute(script)
    assert result is None
    assert file_name.read_text() == new_content


def test_permissions_and_append(executor, tmp_path):
    file_name = tmp_path / "file-2.txt"
    origin = "some-content-2"
    appended = "some-content-append-2"
    file_name.write_text(origin)
    os.chmod(file_name, 0o644)
    script = (
        f"write_files:\n- path: {file_name}\n  permissions: '{0o777:o}'\n"
        f"  content: {appended}\n  append: true"
    )
    result = executor.execute(script)
    assert result is None
    assert file_name.read_text() == origin + appended
    assert stat.S_IMODE(os.stat(file_name).st_mode) == 0o777


def test_base64_content(executor, tmp_path):
    file_name = tmp_path / "file-3.txt"
    content = "some-content-3"
    encoded = base64.b64encode(content.encode()).decode()
    executor.execute(
        f"write_files:\n- path: {file_name}\n  content: {encoded}\n  encoding: base64"
    )
    assert file_name.read_text() == content


def test_gzip_content(executor, tmp_path):
    file_name = tmp_path / "file-4.txt"
    content = "some-content-4"
    encoded = base64.b64encode(gzip.compress(content.encode())).decode()
    executor.execute(
        f"write_files:\n- path: {file_name}\n  encoding: gzip+base64\n  content: {encoded}"
    )
    assert file_name.read_text() == content


def test_template_content(executor, tmp_path):
    file_name = tmp_path / "file-5.txt"
    executor.execute(
        f"write_files:\n- path: {file_name}\n"
        "  content: The default interface name is {{ .DefaultNetworkInterfaceName }} "
    )
    assert file_name.read_text() == "The default interface name is eth0"


def test_files_are_written_before_commands():
    recorder = _Recorder()
    ScriptExecutor(recorder, recorder, None).execute(
        "runcmd:\n- echo hi\nwrite_files:\n- path: /etc/x/y.conf\n  content: abc"
    )
    assert recorder.calls == [
        ("mkdir", "/etc/x"),
        ("write", "/etc/x/y.conf", "abc"),
        ("run", "echo hi"),
    ]


def test_failing_command_raises():
    recorder = _Recorder(fail_cmd=True)
    with pytest.raises(RuntimeError, match="Error running the command false"):
        ScriptExecutor(recorder, recorder, None).execute("runCmd:\n- 'false'")


def test_invalid_yaml_raises():
    recorder = _Recorder()
    with pytest.raises(ValueError, match="error parsing write_files action"):
        ScriptExecutor(recorder, recorder, None).execute("write_files: [unclosed")
    assert recorder.calls == []


@pytest.mark.parametrize(
    "encoding, expected",
    [
        ("gz+base64", ["application/base64", "application/x-gzip"]),
        (" GZIP+B64 ", ["application/base64", "application/x-gzip"]),
        ("b64", ["application/base64"]),
        ("Base64", ["application/base64"]),
        ("", ["text/plain"]),
        ("other", ["text/plain"]),
    ],
)
def test_parse_encoding_scheme(encoding, expected):
    assert parse_encoding_scheme(encoding) == expected


def test_decode_plain_is_identity():
    assert decode_content("as is", ["text/plain"]) == "as is"


def test_decode_unknown_encoding_raises():
    with pytest.raises(ValueError, match="Unknown bootstrap data encoding"):
        decode_content("data", ["application/unknown"])


def test_decode_bad_base64_raises():
    with pytest.raises(ValueError):
        decode_content("not base64!", ["application/base64"])