"""Writing of files described by a cloud-init write_files directive."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

FILE_PERMISSION = 0o644
DIR_PERMISSION = 0o744

_OCTAL_RE = re.compile(r"[0-7]+")


@dataclass
class Files:
    """One entry of a write_files directive."""

    path: str
    content: str = ""
    encoding: str = ""
    owner: str = ""
    permissions: str = ""
    append: bool = False


def _parse_mode(permissions: str) -> int:
    if not _OCTAL_RE.fullmatch(permissions) or int(permissions, 8) >= 2**32:
        raise ValueError(f"Error parse the file permission {permissions}")
    return int(permissions, 8)


def _lookup_owner(owner: str) -> tuple[int, int]:
    parts = owner.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid owner format '{owner}'")
    import pwd

    try:
        entry = pwd.getpwnam(parts[0])
    except KeyError as exc:
        raise ValueError(f"Error Lookup user {parts[0]}") from exc
    return entry.pw_uid, entry.pw_gid


class FileWriter:
    """Creates directories and writes files on the local file system."""

    def mkdir_if_not_exists(self, dir_name: str) -> None:
        """Create ``dir_name`` and its parents unless it already exists."""
        try:
            os.stat(dir_name)
        except FileNotFoundError:
            os.makedirs(dir_name, mode=DIR_PERMISSION, exist_ok=True)

    def write_to_file(self, file: Files) -> None:
        """Write the file's content, then apply its permissions and owner.

        The file is not truncated: without ``append`` the content overwrites
        the start of an existing file.
        """
        flags = os.O_WRONLY | os.O_CREAT
        if file.append:
            flags |= os.O_APPEND

        fd = os.open(file.path, flags, FILE_PERMISSION)
        with os.fdopen(fd, "wb") as handle:
            handle.write(file.content.encode("utf-8", "surrogateescape"))
            handle.flush()

            if file.permissions:
                os.fchmod(handle.fileno(), _parse_mode(file.permissions))

            if file.owner:
                uid, gid = _lookup_owner(file.owner)
                os.fchown(handle.fileno(), uid, gid)