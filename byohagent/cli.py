"""Developer command line for listing, previewing and running bundle installs."""

from __future__ import annotations

import argparse
import logging
import math
import sys
from typing import Sequence, TextIO

from byohagent.bundle_downloader import BundleType, get_bundle_name
from byohagent.os_detector import OsDetector
from byohagent.installer import (
    list_supported_k8s,
    list_supported_os,
    new_installer,
    new_unchecked,
    preview_changes,
)
from byohagent.output import LogPrinter

_LOGGER = logging.getLogger("byohagent.cli")

_MIN_WIDTH = 8
_TAB_WIDTH = 8

_SUPPORTED_NOTE = (
    "The corresponding bundles (particular to a patch version) should be pushed "
    "to the OCI registry of choice\n"
    "By default, BYOH uses projects.registry.vmware.com\n\n"
    "Note: It may happen that a specific patch version of a k8s minor release "
    "is not available in the OCI registry\n\n"
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="byoh-installer", allow_abbrev=False)
    parser.add_argument(
        "--list-supported", "-list-supported", action="store_true",
        help="List all supported OS, Kubernetes versions and BYOH Bundle names",
    )
    parser.add_argument(
        "--detect", "-detect", action="store_true",
        help="Detects the current operating system",
    )
    parser.add_argument(
        "--install", "-install", action="store_true", help="Install a BYOH Bundle"
    )
    parser.add_argument(
        "--uninstall", "-uninstall", action="store_true", help="Uninstall a BYOH Bundle"
    )
    parser.add_argument(
        "--bundle-repo", "-bundle-repo", default="projects.registry.vmware.com",
        help="BYOH Bundle Repository",
    )
    parser.add_argument(
        "--cache-path", "-cache-path", default=".", help="Path to the local bundle cache"
    )
    parser.add_argument("--k8s", "-k8s", default="1.22.1", help="Kubernetes version")
    parser.add_argument(
        "--os", "-os", dest="os_name", default="",
        help="OS. If used with install/uninstall, override os detection",
    )
    parser.add_argument(
        "--preview-os-changes", "-preview-os-changes", action="store_true",
        help="Preview the install and uninstall changes for the specified OS",
    )
    return parser


def _format_table(rows: list[list[str]]) -> str:
    """Align tab-separated cells the way a tab-padded tabwriter does."""
    ncols = max(len(row) for row in rows)
    widths = []
    for col in range(ncols - 1):
        cells = [len(row[col]) for row in rows if len(row) > col + 1]
        widths.append(max([_MIN_WIDTH, *cells]))

    lines = []
    for row in rows:
        parts = []
        for col, cell in enumerate(row):
            if col < len(row) - 1:
                cell_width = math.ceil(widths[col] / _TAB_WIDTH) * _TAB_WIDTH
                tabs = math.ceil((cell_width - len(cell)) / _TAB_WIDTH)
                parts.append(cell + "\t" * tabs)
            else:
                parts.append(cell)
        lines.append("".join(parts) + "\n")
    return "".join(lines)


def _list_supported(stream: TextIO) -> None:
    rows = [
        ["OS", "K8S Version", "BYOH Bundle Name"],
        ["---", "-----------", "----------------"],
    ]
    os_filters, os_bundles = list_supported_os()
    for os_filter, os_bundle in zip(os_filters, os_bundles):
        for k8s in list_supported_k8s(os_bundle):
            rows.append([os_filter, f" {k8s}", f"{get_bundle_name(os_bundle)}:{k8s}"])
    stream.write(_SUPPORTED_NOTE)
    stream.write(_format_table(rows))


def _detect_os(stream: TextIO) -> None:
    try:
        detected = OsDetector().detect()
    except Exception as exc:
        _LOGGER.error("Error detecting OS: %s", exc)
        return
    stream.write(f"Detected OS as: {detected}")


def _run_installer(args: argparse.Namespace, install: bool) -> None:
    try:
        if args.os_name:
            # Override detection of the current OS.
            inst = new_unchecked(
                args.os_name, BundleType.K8S, args.cache_path, _LOGGER, LogPrinter(_LOGGER)
            )
        else:
            inst = new_installer(args.cache_path, BundleType.K8S, _LOGGER)
    except Exception as exc:
        _LOGGER.error("unable to create installer: %s", exc)
        return

    try:
        if install:
            inst.install(args.bundle_repo, args.k8s)
        else:
            inst.uninstall(args.bundle_repo, args.k8s)
    except Exception as exc:
        _LOGGER.error("error installing/uninstalling: %s", exc)


def _preview_os_changes(args: argparse.Namespace, stream: TextIO) -> None:
    try:
        install, uninstall = preview_changes(args.os_name, args.k8s)
    except Exception as exc:
        _LOGGER.error(
            "error previewing changes for os %s, k8s %s: %s", args.os_name, args.k8s, exc
        )
        return
    stream.write(f"Install changes:\n{install}\n\n")
    stream.write(f"Uninstall changes:\n{uninstall}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the installer command line and return the exit status."""
    args = _build_parser().parse_args(argv)
    stream = sys.stdout

    if args.list_supported:
        _list_supported(stream)
    elif args.detect:
        _detect_os(stream)
    elif args.install:
        _run_installer(args, install=True)
    elif args.uninstall:
        _run_installer(args, install=False)
    elif args.preview_os_changes:
        _preview_os_changes(args, stream)
    else:
        print("No flag set. See --help", file=stream)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())