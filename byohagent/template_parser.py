"""Substitution of ``{{ .Field }}`` actions in cloud-init file content."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_NO_VALUE = "<no value>"
_FIELD_RE = re.compile(r"\.|(?:\.[A-Za-z_]\w*)+")
_SPACE = " \t\r\n"


def _format(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateParser:
    """Fills field actions from ``template``, a mapping or an object.

    Supported actions are ``{{ . }}``, ``{{ .A.B }}`` and comments, with
    ``{{-`` and ``-}}`` trimming the whitespace around them.
    """

    def __init__(self, template: Any = None) -> None:
        self.template = template

    def parse_template(self, template_content: str) -> str:
        """Return the content with every action replaced by its value."""
        pieces: list[str] = []
        pos = 0
        trim_next = False
        while True:
            start = template_content.find("{{", pos)
            if start < 0:
                text = template_content[pos:]
                pieces.append(text.lstrip(_SPACE) if trim_next else text)
                break

            text = template_content[pos:start]
            if trim_next:
                text = text.lstrip(_SPACE)

            end = template_content.find("}}", start + 2)
            if end < 0:
                raise ValueError("template: byoh: unclosed action")
            action = template_content[start + 2 : end]

            if len(action) > 1 and action[0] == "-" and action[1] in _SPACE:
                text = text.rstrip(_SPACE)
                action = action[2:]
            trim_next = len(action) > 1 and action[-1] == "-" and action[-2] in _SPACE
            if trim_next:
                action = action[:-2]

            pieces.append(text)
            pieces.append(self._evaluate(action.strip(_SPACE)))
            pos = end + 2
        return "".join(pieces)

    def _evaluate(self, action: str) -> str:
        if action.startswith("/*") and action.endswith("*/"):
            return ""
        if not action:
            raise ValueError("template: byoh: missing value for command")
        if not _FIELD_RE.fullmatch(action):
            raise ValueError(f"template: byoh: unsupported action {{{{{action}}}}}")

        value = self.template
        for name in action.split(".")[1:]:
            if value is None:
                return _NO_VALUE
            if isinstance(value, Mapping):
                if name not in value:
                    return _NO_VALUE
                value = value[name]
            else:
                try:
                    value = getattr(value, name)
                except AttributeError as exc:
                    raise ValueError(
                        f"template: byoh: can't evaluate field {name}"
                    ) from exc
        return _format(value)