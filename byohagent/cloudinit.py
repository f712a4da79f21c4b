"""Execution of the write_files and runcmd directives of a cloud-init script."""

from __future__ import annotations

import base64
import binascii
import dataclasses
import gzip
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from byohagent.cmd_runner import CmdRunner
from byohagent.file_writer import FileWriter, Files

_BASE64 = "application/base64"
_GZIP = "application/x-gzip"
_PLAIN = "text/plain"


def parse_encoding_scheme(encoding: str) -> list[str]:
    """Return the decodings to apply, in order, for a write_files encoding."""
    encoding = encoding.lower().strip()
    if encoding in ("gz+base64", "gzip+base64", "gz+b64", "gzip+b64"):
        return [_BASE64, _GZIP]
    if encoding in ("base64", "b64"):
        return [_BASE64]
    return [_PLAIN]


def _to_text(data: bytes) -> str:
    return data.decode("utf-8", "surrogateescape")


def decode_content(content: str, encodings: list[str]) -> str:
    """Apply each decoding in turn and return the result."""
    for encoding in encodings:
        if encoding == _BASE64:
            compact = content.replace("\r", "").replace("\n", "")
            try:
                content = _to_text(base64.b64decode(compact, validate=True))
            except binascii.Error as exc:
                raise ValueError(f"illegal base64 data: {exc}") from exc
        elif encoding == _GZIP:
            try:
                content = _to_text(gzip.decompress(content.encode("utf-8", "surrogateescape")))
            except (OSError, EOFError) as exc:
                raise ValueError(f"invalid gzip data: {exc}") from exc
        elif encoding != _PLAIN:
            raise ValueError(f"Unknown bootstrap data encoding: {content!r}")
    return content


def _string_field(entry: dict[str, Any], name: str) -> str:
    value = entry.get(name)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise ValueError(f"field {name} must be a string")
    return str(value)


def _lowered(mapping: Any) -> dict[str, Any]:
    if not isinstance(mapping, dict):
        raise ValueError("expected a mapping")
    return {str(key).lower(): value for key, value in mapping.items()}


def _parse_script(script: str) -> tuple[list[Files], list[str]]:
    data = yaml.safe_load(script)
    if data is None:
        return [], []
    config = _lowered(data)

    files = []
    for raw in config.get("write_files") or []:
        entry = _lowered(raw)
        append = entry.get("append")
        if append is not None and not isinstance(append, bool):
            raise ValueError("field append must be a boolean")
        files.append(
            Files(
                path=_string_field(entry, "path"),
                content=_string_field(entry, "content"),
                encoding=_string_field(entry, "encoding"),
                owner=_string_field(entry, "owner"),
                permissions=_string_field(entry, "permissions"),
                append=bool(append),
            )
        )

    commands = config.get("runcmd") or []
    if not isinstance(commands, list):
        raise ValueError("runCmd must be a list")
    return files, [_string_field({"cmd": cmd}, "cmd") for cmd in commands]


@dataclass
class ScriptExecutor:
    """Writes the files of a bootstrap script, then runs its commands.

    Without a template parser the file content is written as decoded.
    """

    write_files_executor: Any = field(default_factory=FileWriter)
    run_cmd_executor: Any = field(default_factory=CmdRunner)
    parse_template_executor: Any = None

    def execute(self, bootstrap_script: str) -> None:
        """Run the write_files and runCmd directives of ``bootstrap_script``."""
        try:
            files, commands = _parse_script(bootstrap_script)
        except (yaml.YAMLError, ValueError) as exc:
            raise ValueError(
                f"error parsing write_files action: {bootstrap_script}: {exc}"
            ) from exc

        for file in files:
            directory = os.path.dirname(file.path) or "."
            try:
                self.write_files_executor.mkdir_if_not_exists(directory)
            except Exception as exc:
                raise RuntimeError(f"Error creating the directory {directory}") from exc

            try:
                content = decode_content(file.content, parse_encoding_scheme(file.encoding))
            except ValueError as exc:
                raise ValueError(f"error decoding content for {file.path}: {exc}") from exc

            if self.parse_template_executor is not None:
                try:
                    content = self.parse_template_executor.parse_template(content)
                except Exception as exc:
                    raise ValueError(
                        f"error parse template content for {file.path}: {exc}"
                    ) from exc

            try:
                self.write_files_executor.write_to_file(dataclasses.replace(file, content=content))
            except Exception as exc:
                raise RuntimeError(f"Error writing the file {file.path}") from exc

        for cmd in commands:
            try:
                self.run_cmd_executor.run_cmd(cmd)
            except Exception as exc:
                raise RuntimeError(f"Error running the command {cmd}") from exc