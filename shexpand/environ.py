"""Shell variables and the environments that hold them."""

from __future__ import annotations

import abc
import bisect
import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Iterator, Mapping

# Maximum number of name references followed when resolving a variable, so
# that reference loops cannot hang a program.
MAX_NAME_REF_DEPTH = 100


class ValueKind(IntEnum):
    """The kind of value a variable holds."""

    UNSET = 0
    STRING = 1
    NAMEREF = 2
    INDEXED = 3
    ASSOCIATIVE = 4


@dataclass(frozen=True)
class Variable:
    """A shell variable with its attributes and value.

    ``value`` is used for string and name reference variables, ``items`` for
    indexed arrays and ``mapping`` for associative arrays. The default
    instance is a valid unset variable.
    """

    local: bool = False
    exported: bool = False
    read_only: bool = False
    kind: ValueKind = ValueKind.UNSET
    value: str = ""
    items: tuple[str, ...] = ()
    mapping: Mapping[str, str] = field(default_factory=dict)

    def is_set(self) -> bool:
        """Whether the variable is set; an empty variable is still set."""
        return self.kind != ValueKind.UNSET

    def __str__(self) -> str:
        if self.kind == ValueKind.STRING:
            return self.value
        if self.kind == ValueKind.INDEXED and self.items:
            return self.items[0]
        return ""

    def resolve(self, env: Environ) -> tuple[str, Variable]:
        """Follow name references, returning the last name and its variable."""
        name = ""
        vr = self
        for _ in range(MAX_NAME_REF_DEPTH):
            if vr.kind != ValueKind.NAMEREF:
                return name, vr
            name = vr.value
            vr = env.get(name)
        return name, Variable()


class Environ(abc.ABC):
    """A read-only view of a shell's variables."""

    @abc.abstractmethod
    def get(self, name: str) -> Variable:
        """Return the variable called ``name``; it may be unset."""

    @abc.abstractmethod
    def each(self) -> Iterator[tuple[str, Variable]]:
        """Yield ``(name, variable)`` for every set variable.

        Names need not be unique or sorted; a later occurrence wins.
        """


class WriteEnviron(Environ):
    """An environment whose variables can also be set and unset."""

    @abc.abstractmethod
    def set(self, name: str, vr: Variable) -> None:
        """Set ``name`` to ``vr``; an unset ``vr`` unsets the variable.

        Raises an exception if the operation is invalid, for example when
        overwriting a read-only variable.
        """


class FuncEnviron(Environ):
    """An environment backed by a function from names to string values.

    Empty strings count as unset variables; all variables are exported and
    iteration yields nothing.
    """

    def __init__(self, fn: Callable[[str], str]) -> None:
        self._fn = fn

    def get(self, name: str) -> Variable:
        value = self._fn(name)
        if value == "":
            return Variable()
        return Variable(exported=True, kind=ValueKind.STRING, value=value)

    def each(self) -> Iterator[tuple[str, Variable]]:
        return iter(())


class ListEnviron(Environ):
    """An environment backed by a sorted sequence of ``name=value`` strings."""

    def __init__(self, pairs: tuple[str, ...]) -> None:
        self.pairs = tuple(pairs)

    def get(self, name: str) -> Variable:
        prefix = name + "="
        i = bisect.bisect_left(self.pairs, prefix)
        if i < len(self.pairs) and self.pairs[i].startswith(prefix):
            return Variable(
                exported=True,
                kind=ValueKind.STRING,
                value=self.pairs[i][len(prefix):],
            )
        return Variable()

    def each(self) -> Iterator[tuple[str, Variable]]:
        for pair in self.pairs:
            name, sep, value = pair.partition("=")
            if not sep:
                raise ValueError(f"malformed name-value pair: {pair!r}")
            yield name, Variable(exported=True, kind=ValueKind.STRING, value=value)


def func_environ(fn: Callable[[str], str]) -> FuncEnviron:
    """Wrap a function mapping names to values as an environment."""
    return FuncEnviron(fn)


def list_environ(*args: str) -> ListEnviron:
    """Build an environment from ``name=value`` strings; the last one wins.

    On Windows, where variable names are case-insensitive, names are
    uppercased.
    """
    return list_environ_with_upper(sys.platform == "win32", *args)


def _name_key(pair: str) -> str:
    sep = pair.find("=")
    return pair[:sep] if sep > 0 else ""


def list_environ_with_upper(upper: bool, *args: str) -> ListEnviron:
    """Like :func:`list_environ`, choosing explicitly whether to uppercase names."""
    pairs = list(args)
    if upper:
        pairs = [
            pair[:sep].upper() + pair[sep:] if (sep := pair.find("=")) > 0 else pair
            for pair in pairs
        ]
    pairs.sort(key=_name_key)

    result: list[str] = []
    last = ""
    for pair in pairs:
        sep = pair.find("=")
        if sep <= 0:
            continue
        name = pair[:sep]
        if name == last:
            result[-1] = pair
            continue
        result.append(pair)
        last = name
    return ListEnviron(tuple(result))