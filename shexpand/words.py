"""Shell word nodes and brace expansion."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

_INT_RE = re.compile(r"[+-]?[0-9]+")
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _atoi(text: str) -> Optional[int]:
    """Parse a decimal integer strictly, or return None."""
    if _INT_RE.fullmatch(text):
        return int(text)
    return None


def valid_name(name: str) -> bool:
    """Whether ``name`` is a valid shell variable name."""
    return _NAME_RE.fullmatch(name) is not None


@dataclass(frozen=True)
class Pos:
    """A position in the source text."""

    offset: int = 0
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.col}"


@dataclass
class Lit:
    """An unquoted literal string."""

    value: str
    pos: Pos = Pos()


@dataclass
class SglQuoted:
    """A single-quoted string, or ``$'...'`` when ``dollar`` is set."""

    value: str
    dollar: bool = False
    pos: Pos = Pos()


@dataclass
class DblQuoted:
    """A double-quoted list of word parts."""

    parts: list = field(default_factory=list)
    dollar: bool = False
    pos: Pos = Pos()


@dataclass
class CmdSubst:
    """A command substitution; ``stmts`` are handed to the configured runner."""

    stmts: list = field(default_factory=list)
    pos: Pos = Pos()


@dataclass
class ProcSubst:
    """A process substitution such as ``<(cmd)``; ``op`` is ``<(`` or ``>(``."""

    op: str = "<("
    stmts: list = field(default_factory=list)
    pos: Pos = Pos()


@dataclass
class ArithmExp:
    """An arithmetic expansion, ``$((...))`` or ``$[...]``."""

    x: ArithmExpr
    bracket: bool = False
    pos: Pos = Pos()


@dataclass
class ParenArithm:
    """A parenthesised arithmetic expression."""

    x: ArithmExpr


class UnAritOperator(Enum):
    NOT = "!"
    BIT_NEGATION = "~"
    INC = "++"
    DEC = "--"
    PLUS = "+"
    MINUS = "-"


@dataclass
class UnaryArithm:
    """A unary arithmetic operation; ``post`` marks ``a++`` and ``a--``."""

    op: UnAritOperator
    x: ArithmExpr
    post: bool = False


class BinAritOperator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    QUO = "/"
    REM = "%"
    POW = "**"
    EQL = "=="
    GTR = ">"
    LSS = "<"
    NEQ = "!="
    LEQ = "<="
    GEQ = ">="
    AND = "&"
    OR = "|"
    XOR = "^"
    SHR = ">>"
    SHL = "<<"
    AND_ARIT = "&&"
    OR_ARIT = "||"
    COMMA = ","
    TERN_QUEST = "?"
    TERN_COLON = ":"
    ASSGN = "="
    ADD_ASSGN = "+="
    SUB_ASSGN = "-="
    MUL_ASSGN = "*="
    QUO_ASSGN = "/="
    REM_ASSGN = "%="
    AND_ASSGN = "&="
    OR_ASSGN = "|="
    XOR_ASSGN = "^="
    SHL_ASSGN = "<<="
    SHR_ASSGN = ">>="


@dataclass
class BinaryArithm:
    """A binary arithmetic operation; a ternary nests a TERN_COLON in ``y``."""

    op: BinAritOperator
    x: ArithmExpr
    y: ArithmExpr


class ParExpOperator(Enum):
    ALTERNATE_UNSET = "+"
    ALTERNATE_UNSET_OR_NULL = ":+"
    DEFAULT_UNSET = "-"
    DEFAULT_UNSET_OR_NULL = ":-"
    ERROR_UNSET = "?"
    ERROR_UNSET_OR_NULL = ":?"
    ASSIGN_UNSET = "="
    ASSIGN_UNSET_OR_NULL = ":="
    REM_SMALL_SUFFIX = "%"
    REM_LARGE_SUFFIX = "%%"
    REM_SMALL_PREFIX = "#"
    REM_LARGE_PREFIX = "##"
    UPPER_FIRST = "^"
    UPPER_ALL = "^^"
    LOWER_FIRST = ","
    LOWER_ALL = ",,"
    OTHER_PARAM_OPS = "@"


class ParNamesOperator(Enum):
    NAMES_PREFIX = "*"
    NAMES_PREFIX_WORDS = "@"


@dataclass
class Slice:
    """The ``${name:offset:length}`` part of a parameter expansion."""

    offset: Optional[ArithmExpr] = None
    length: Optional[ArithmExpr] = None


@dataclass
class Replace:
    """The ``${name/orig/with}`` part of a parameter expansion."""

    orig: Word
    with_: Optional[Word] = None
    all: bool = False


@dataclass
class Expansion:
    """An operator and word such as ``${name:-word}``."""

    op: ParExpOperator
    word: Optional[Word] = None


@dataclass
class ParamExp:
    """A parameter expansion such as ``$name`` or ``${name...}``."""

    param: Lit
    pos: Pos = Pos()
    short: bool = False
    excl: bool = False
    length: bool = False
    width: bool = False
    index: Optional[ArithmExpr] = None
    slice: Optional[Slice] = None
    repl: Optional[Replace] = None
    names: Optional[ParNamesOperator] = None
    exp: Optional[Expansion] = None


@dataclass
class BraceExp:
    """A brace expansion: a list ``{a,b}`` or a ``{x..y[..incr]}`` sequence."""

    elems: list[Word] = field(default_factory=list)
    sequence: bool = False


@dataclass
class Word:
    """A shell word made of a list of parts."""

    parts: list = field(default_factory=list)

    def lit(self) -> str:
        """The word's text if every part is a literal, otherwise ``""``."""
        if not all(isinstance(part, Lit) for part in self.parts):
            return ""
        return "".join(part.value for part in self.parts)


WordPart = Union[Lit, SglQuoted, DblQuoted, ParamExp, CmdSubst, ArithmExp, ProcSubst, BraceExp]
ArithmExpr = Union[Word, ParenArithm, UnaryArithm, BinaryArithm]


def _is_valid_sequence(br: BraceExp) -> bool:
    chars = [False, False]
    for i, elem in enumerate(br.elems[:2]):
        val = elem.lit()
        if _atoi(val) is not None:
            continue
        if len(val) == 1 and "a" <= val <= "z":
            chars[i] = True
        else:
            return False
    if len(br.elems) == 3 and _atoi(br.elems[2].lit()) is None:
        return False
    return chars[0] == chars[1]


class _BraceSplitter:
    """State for turning brace syntax inside literals into BraceExp parts."""

    def __init__(self) -> None:
        self.top = Word()
        self.acc = self.top
        self.open: list[BraceExp] = []
        self.split = False

    def add(self, *parts) -> None:
        self.acc.parts.extend(parts)

    def push(self) -> None:
        self.acc = Word()
        self.open.append(BraceExp(elems=[self.acc]))

    def new_elem(self) -> None:
        self.acc = Word()
        self.open[-1].elems.append(self.acc)

    def pop(self) -> BraceExp:
        br = self.open.pop()
        self.acc = self.open[-1].elems[-1] if self.open else self.top
        return br

    def unbrace(self, br: BraceExp, sep: str, closed: bool) -> None:
        self.add(Lit("{"))
        for i, elem in enumerate(br.elems):
            if i:
                self.add(Lit(sep))
            self.add(*elem.parts)
        if closed:
            self.add(Lit("}"))

    def close(self) -> None:
        self.split = True
        br = self.pop()
        if len(br.elems) == 1:
            self.unbrace(br, ",", closed=True)
        elif not br.sequence or _is_valid_sequence(br):
            self.add(br)
        else:
            self.unbrace(br, "..", closed=True)

    def feed(self, lit: Lit) -> None:
        text = lit.value
        last = 0
        j = 0

        def flush(end: int) -> None:
            if end > last:
                self.add(Lit(text[last:end], lit.pos))

        while j < len(text):
            ch = text[j]
            if ch == "{":
                flush(j)
                self.push()
            elif ch == "," and self.open:
                flush(j)
                self.new_elem()
            elif ch == "." and self.open and text.startswith("..", j):
                flush(j)
                self.open[-1].sequence = True
                self.new_elem()
                j += 1
            elif ch == "}" and self.open:
                flush(j)
                self.close()
            else:
                j += 1
                continue
            j += 1
            last = j
        if last == 0:
            self.add(lit)
        elif last < len(text):
            self.add(Lit(text[last:], lit.pos))

    def finish(self) -> None:
        while self.open:
            br = self.pop()
            self.unbrace(br, ".." if br.sequence else ",", closed=False)


def split_braces(word: Word) -> bool:
    """Turn brace syntax in the word's literals into BraceExp parts, in place.

    Returns whether any braces were closed, in which case ``word.parts`` is
    replaced. Malformed braces are kept as literal text.
    """
    splitter = _BraceSplitter()
    for part in word.parts:
        if isinstance(part, Lit):
            splitter.feed(part)
        else:
            splitter.add(part)
    splitter.finish()
    if not splitter.split:
        return False
    word.parts = splitter.top.parts
    return True


def _sequence_values(br: BraceExp) -> list[str]:
    first, second = br.elems[0].lit(), br.elems[1].lit()
    start, stop = _atoi(first), _atoi(second)
    chars = start is None or stop is None
    if chars:
        start, stop = ord(first[0]), ord(second[0])
    upward = start <= stop
    incr = 1 if upward else -1
    if len(br.elems) > 2:
        step = _atoi(br.elems[2].lit()) or 0
        if step != 0 and (step > 0) == upward:
            incr = step
    values = []
    n = start
    while (n <= stop) if upward else (n >= stop):
        values.append(chr(n) if chars else str(n))
        n += incr
    return values


def braces(word: Word) -> list[Word]:
    """Expand the BraceExp parts of a word into literal words.

    For example ``foo{bar,baz}`` becomes ``foobar`` and ``foobaz``. The
    resulting words may share parts.
    """
    left: list = []
    for i, part in enumerate(word.parts):
        if not isinstance(part, BraceExp):
            left.append(part)
            continue
        rest = word.parts[i + 1:]
        if part.sequence:
            heads = [[Lit(value)] for value in _sequence_values(part)]
        else:
            heads = [list(elem.parts) for elem in part.elems]
        return [
            Word(parts=[*left, *expanded.parts])
            for head in heads
            for expanded in braces(Word(parts=[*head, *rest]))
        ]
    return [Word(parts=left)]