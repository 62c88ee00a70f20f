"""Helpers to recognise shell scripts on disk."""

from __future__ import annotations

import os
import re
import stat
from enum import IntEnum

_SHEBANG_RE = re.compile(rb"^#![ \t\n\f\r]?/(usr/)?bin/(env[ \t\n\f\r]+)?(sh|bash)[ \t\n\f\r]")
_SHELL_EXTENSIONS = (".sh", ".bash")
_MIN_SHEBANG_SIZE = len("#/bin/sh\n")


def has_shebang(data: bytes) -> bool:
    """Whether ``data`` begins with a sh or bash shebang, with or without env."""
    return _SHEBANG_RE.match(data) is not None


class ScriptConfidence(IntEnum):
    """How likely a file is to be a shell script."""

    NOT_SCRIPT = 0
    """Definitely not a script: not a regular file, or a non-shell extension."""
    IF_SHEBANG = 1
    """A script only if its contents start with a shell shebang."""
    IS_SCRIPT = 2
    """A regular file with a shell extension."""


def could_be_script(path: str | os.PathLike[str]) -> ScriptConfidence:
    """Report how likely the file at ``path`` is to be a shell script.

    Directories, symlinks, hidden files and files with non-shell extensions
    are discarded. The file itself is not read.
    """
    info = os.lstat(path)
    name = os.path.basename(os.path.normpath(os.fspath(path)))
    if stat.S_ISDIR(info.st_mode) or not name or name.startswith("."):
        return ScriptConfidence.NOT_SCRIPT
    if stat.S_ISLNK(info.st_mode):
        return ScriptConfidence.NOT_SCRIPT
    if name.endswith(_SHELL_EXTENSIONS):
        return ScriptConfidence.IS_SCRIPT
    if name.find(".") > 0:
        return ScriptConfidence.NOT_SCRIPT
    if info.st_size < _MIN_SHEBANG_SIZE:
        return ScriptConfidence.NOT_SCRIPT
    return ScriptConfidence.IF_SHEBANG