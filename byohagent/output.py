"""Sinks that collect the output produced while installer steps run."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class OutputBuilder(ABC):
    """Receives the output of an installation algorithm as it runs."""

    @abstractmethod
    def out(self, s: str) -> None:
        """Record regular command output."""

    @abstractmethod
    def err(self, s: str) -> None:
        """Record error output."""

    @abstractmethod
    def cmd(self, s: str) -> None:
        """Record a command that is about to run."""

    @abstractmethod
    def desc(self, s: str) -> None:
        """Record a description."""

    @abstractmethod
    def msg(self, s: str) -> None:
        """Record a progress message."""


@dataclass
class OutputBuilderCounter(OutputBuilder):
    """Counts how many times any kind of output was produced."""

    log_called_cnt: int = 0

    def out(self, s: str) -> None:
        self.log_called_cnt += 1

    def err(self, s: str) -> None:
        self.log_called_cnt += 1

    def cmd(self, s: str) -> None:
        self.log_called_cnt += 1

    def desc(self, s: str) -> None:
        self.log_called_cnt += 1

    def msg(self, s: str) -> None:
        self.log_called_cnt += 1


@dataclass
class LogPrinter(OutputBuilder):
    """Forwards every kind of output to a logger at INFO level."""

    logger: logging.Logger

    def out(self, s: str) -> None:
        self.logger.info(s)

    def err(self, s: str) -> None:
        self.logger.info(s)

    def cmd(self, s: str) -> None:
        self.logger.info(s)

    def desc(self, s: str) -> None:
        self.logger.info(s)

    def msg(self, s: str) -> None:
        self.logger.info(s)


def _apply_fmt(step_fmt: str, s: str) -> str:
    return (step_fmt or "%s") % (s,)


@dataclass
class StringPrinter(OutputBuilder):
    """Collects output as formatted lines; str() joins them."""

    steps: list[str] = field(default_factory=list)
    desc_fmt: str = ""
    cmd_fmt: str = ""
    out_fmt: str = ""
    err_fmt: str = ""
    msg_fmt: str = ""
    str_divider: str = ""

    def out(self, s: str) -> None:
        self.steps.append(_apply_fmt(self.out_fmt, s))

    def err(self, s: str) -> None:
        self.steps.append(_apply_fmt(self.err_fmt, s))

    def cmd(self, s: str) -> None:
        self.steps.append(_apply_fmt(self.cmd_fmt, s))

    def desc(self, s: str) -> None:
        self.steps.append(_apply_fmt(self.desc_fmt, s))

    def msg(self, s: str) -> None:
        self.steps.append(_apply_fmt(self.msg_fmt, s))

    def __str__(self) -> str:
        return (self.str_divider or "\n").join(self.steps)