"""Expansion settings shared by the expansion functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, TextIO

from .environ import Environ, FuncEnviron, ValueKind, Variable, WriteEnviron
from .words import CmdSubst, ParamExp, ProcSubst

DEFAULT_IFS = " \t\n"


class UnexpectedCommandError(Exception):
    """A command substitution was found but no runner for it was configured."""

    def __init__(self, node: CmdSubst) -> None:
        self.node = node
        super().__init__(f"unexpected command substitution at {node.pos}")


class UnsetParameterError(Exception):
    """A parameter expansion required a variable that is unset or empty."""

    def __init__(self, node: ParamExp, message: str) -> None:
        self.node = node
        self.message = message
        super().__init__(f"{node.param.value}: {message}")


class ReadOnlyEnvironError(Exception):
    """An expansion tried to assign a variable in a read-only environment."""

    def __init__(self) -> None:
        super().__init__("environment is read-only")


@dataclass
class Config:
    """How shell expansion is performed; the default instance is valid.

    ``env`` holds the variables; when ``None`` no variables are set.
    ``cmd_subst`` is called with a text stream and a :class:`CmdSubst` node and
    writes the command's output to the stream. ``proc_subst`` receives a
    :class:`ProcSubst` node and returns a path. ``read_dir`` lists a directory
    as entries with ``name``, ``is_dir()`` and ``is_symlink()``, as
    :func:`os.scandir` does; when ``None``, globbing is disabled.
    """

    env: Optional[Environ] = None
    cmd_subst: Optional[Callable[[TextIO, CmdSubst], None]] = None
    proc_subst: Optional[Callable[[ProcSubst], str]] = None
    read_dir: Optional[Callable[[str], Iterable[Any]]] = None
    glob_star: bool = False
    null_glob: bool = False
    no_unset: bool = False
    ifs: str = field(default=DEFAULT_IFS, init=False, repr=False)
    cur_param: Optional[ParamExp] = field(default=None, init=False, repr=False)

    def is_ifs(self, ch: str) -> bool:
        """Whether ``ch`` is one of the field separator characters."""
        return len(ch) == 1 and ch in self.ifs

    def ifs_join(self, strs: Iterable[str]) -> str:
        """Join strings with the first field separator character."""
        return self.ifs[:1].join(strs)

    def env_get(self, name: str) -> str:
        """The string value of a variable, or ``""`` when it is unset."""
        if self.env is None:
            return ""
        return str(self.env.get(name))

    def env_set(self, name: str, value: str) -> None:
        """Assign a string value, raising if the environment is read-only."""
        if not isinstance(self.env, WriteEnviron):
            raise ReadOnlyEnvironError()
        self.env.set(name, Variable(kind=ValueKind.STRING, value=value))


def prepare_config(cfg: Optional[Config]) -> Config:
    """Fill in defaults before expanding: an empty environment and the IFS."""
    if cfg is None:
        cfg = Config()
    if cfg.env is None:
        cfg.env = FuncEnviron(lambda _name: "")
    cfg.ifs = DEFAULT_IFS
    ifs_var = cfg.env.get("IFS")
    if ifs_var.is_set():
        cfg.ifs = str(ifs_var)
    return cfg