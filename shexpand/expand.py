"""Shell word expansion: parameters, quotes, tildes, braces and globbing."""

from __future__ import annotations

import io
import os
import re
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

from .arith import arithm
from .config import Config, UnexpectedCommandError, UnsetParameterError, prepare_config
from .environ import ValueKind, Variable
from .printf import format_string
from .words import (
    ArithmExp,
    CmdSubst,
    DblQuoted,
    Lit,
    ParamExp,
    ParExpOperator,
    ParNamesOperator,
    ProcSubst,
    SglQuoted,
    Word,
    braces,
    split_braces,
    valid_name,
)

try:
    import pwd
except ImportError:  # pragma: no cover - platforms without a user database
    pwd = None


class _Quote(IntEnum):
    NONE = 0
    DOUBLE = 1
    SINGLE = 2


@dataclass
class _FieldPart:
    val: str
    quote: _Quote = _Quote.NONE


# --- glob pattern handling -------------------------------------------------


class _PatternError(ValueError):
    """A glob pattern cannot be turned into a regular expression."""


_CLASSES = {
    "alnum": "a-zA-Z0-9",
    "alpha": "a-zA-Z",
    "ascii": "\\x00-\\x7f",
    "blank": " \\t",
    "cntrl": "\\x00-\\x1f\\x7f",
    "digit": "0-9",
    "graph": "!-~",
    "lower": "a-z",
    "print": " -~",
    "punct": "!-/:-@\\[-`{-~",
    "space": " \\t\\n\\r\\f\\v",
    "upper": "A-Z",
    "word": "\\w",
    "xdigit": "0-9A-Fa-f",
}
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _bracket(pat: str, start: int) -> tuple[str, int]:
    n = len(pat)
    j = start + 1
    negate = j < n and pat[j] in "!^"
    if negate:
        j += 1
    items: list[str] = []
    first = True
    while j < n:
        ch = pat[j]
        if ch == "]" and not first:
            return "[" + ("^" if negate else "") + "".join(items) + "]", j
        if pat.startswith("[:", j):
            end = pat.find(":]", j + 2)
            if end < 0:
                raise _PatternError("charClass was not matched with :]")
            name = pat[j + 2:end]
            if name not in _CLASSES:
                raise _PatternError(f"invalid character class: {name}")
            items.append(_CLASSES[name])
            j = end + 2
            first = False
            continue
        escaped = False
        if ch == "\\":
            j += 1
            if j >= n:
                break
            ch = pat[j]
            escaped = True
        if ch == "-" and not escaped and not first and j + 1 < n and pat[j + 1] != "]":
            items.append("-")
        else:
            items.append(re.escape(ch))
        first = False
        j += 1
    raise _PatternError("[ was not matched with a closing ]")


def _brace_alternatives(pat: str, start: int) -> Optional[tuple[list[str], int]]:
    depth = 0
    elems: list[str] = []
    last = start + 1
    j = start
    while j < len(pat):
        ch = pat[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                elems.append(pat[last:j])
                break
        elif ch == "," and depth == 1:
            elems.append(pat[last:j])
            last = j + 1
        j += 1
    else:
        return None
    if len(elems) > 1:
        return elems, j
    lo, sep, hi = elems[0].partition("..")
    if sep and _INT_RE.fullmatch(lo) and _INT_RE.fullmatch(hi):
        a, b = int(lo), int(hi)
        step = 1 if a <= b else -1
        return [str(k) for k in range(a, b + step, step)], j
    return None


def _translate(pat: str, *, filenames: bool = False, shortest: bool = False,
               brace_alts: bool = False) -> str:
    out: list[str] = []
    n = len(pat)
    i = 0
    while i < n:
        c = pat[i]
        if c == "*":
            while i + 1 < n and pat[i + 1] == "*":
                i += 1
            out.append(("[^/]*" if filenames else ".*") + ("?" if shortest else ""))
        elif c == "?":
            out.append("[^/]" if filenames else ".")
        elif c == "\\":
            i += 1
            if i >= n:
                raise _PatternError("\\ at end of pattern")
            out.append(re.escape(pat[i]))
        elif c == "[":
            cls, i = _bracket(pat, i)
            out.append(cls)
        elif c == "{" and brace_alts:
            found = _brace_alternatives(pat, i)
            if found is None:
                out.append(re.escape(c))
            else:
                elems, i = found
                alts = (
                    _translate(e, filenames=filenames, shortest=shortest, brace_alts=True)
                    for e in elems
                )
                out.append("(?:" + "|".join(alts) + ")")
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def _quote_meta(s: str, brace_alts: bool = True) -> str:
    special = "*?[]\\" + ("{}" if brace_alts else "")
    return "".join("\\" + c if c in special else c for c in s)


def _has_meta(s: str, brace_alts: bool = True) -> bool:
    chars = iter(s)
    for c in chars:
        if c == "\\":
            next(chars, None)
        elif c in "*?[" or (brace_alts and c == "{"):
            return True
    return False


def _unescape(s: str) -> str:
    return re.sub(r"\\(.)", r"\1", s, flags=re.DOTALL)


# --- public entry points ---------------------------------------------------


def literal(cfg: Optional[Config], word: Optional[Word]) -> str:
    """Expand a word into a single string, as in a variable assignment."""
    if word is None:
        return ""
    cfg = prepare_config(cfg)
    return _field_join(_word_field(cfg, word.parts, _Quote.NONE))


def document(cfg: Optional[Config], word: Optional[Word]) -> str:
    """Expand a word as if within double quotes: no tildes, braces or globs."""
    if word is None:
        return ""
    cfg = prepare_config(cfg)
    return _field_join(_word_field(cfg, word.parts, _Quote.DOUBLE))


def pattern(cfg: Optional[Config], word: Optional[Word]) -> str:
    """Expand a word as a glob pattern, escaping the quoted parts."""
    cfg = prepare_config(cfg)
    if word is None:
        return ""
    field = _word_field(cfg, word.parts, _Quote.NONE)
    return "".join(
        _quote_meta(part.val) if part.quote > _Quote.NONE else part.val for part in field
    )


def fields(cfg: Optional[Config], *args: Word) -> list[str]:
    """Expand words as command arguments, with splitting and globbing."""
    cfg = prepare_config(cfg)
    result: list[str] = []
    base = cfg.env_get("PWD")
    for word in args:
        copy = Word(parts=list(word.parts))
        after_braces = braces(copy) if split_braces(copy) else [copy]
        for expanded in after_braces:
            for field in _word_fields(cfg, expanded.parts):
                path, do_glob = _escaped_glob_field(field)
                if do_glob and cfg.read_dir is not None:
                    matches = _glob(cfg, base, path)
                    if matches or cfg.null_glob:
                        result.extend(matches)
                        continue
                result.append(_field_join(field))
    return result


# --- field building --------------------------------------------------------


def _field_join(parts: list[_FieldPart]) -> str:
    return "".join(part.val for part in parts)


def _escaped_glob_field(parts: list[_FieldPart]) -> tuple[str, bool]:
    out: list[str] = []
    glob = False
    for part in parts:
        if part.quote > _Quote.NONE:
            out.append(_quote_meta(part.val))
            continue
        out.append(part.val)
        if _has_meta(part.val):
            glob = True
    return ("".join(out) if glob else ""), glob


def _unescape_double(s: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(s):
        c = s[i]
        if c == "\\" and i + 1 < len(s) and s[i + 1] in '"\\$`':
            i += 1
            continue
        out.append(c)
        i += 1
    return "".join(out)


def _remove_backslashes(s: str) -> str:
    out: list[str] = []
    chars = iter(s)
    for c in chars:
        if c == "\\":
            nxt = next(chars, None)
            if nxt is None:
                break
            c = nxt
        out.append(c)
    return "".join(out)


def _dollar_single(cfg: Config, node: SglQuoted) -> str:
    if not node.dollar:
        return node.value
    return format_string(cfg, node.value, None)[0]


def _proc_subst(cfg: Config, node: ProcSubst) -> str:
    if cfg.proc_subst is None:
        raise ValueError(f"unexpected process substitution at {node.pos}")
    return cfg.proc_subst(node)


def _word_field(cfg: Config, parts: Iterable, ql: _Quote) -> list[_FieldPart]:
    field: list[_FieldPart] = []
    for i, part in enumerate(parts):
        if isinstance(part, Lit):
            s = part.value
            if i == 0 and ql == _Quote.NONE:
                prefix, rest = _expand_user(cfg, s)
                if prefix:
                    s = prefix + rest
            if ql == _Quote.DOUBLE and "\\" in s:
                s = _unescape_double(s)
            s = s.split("\x00", 1)[0]
            field.append(_FieldPart(s))
        elif isinstance(part, SglQuoted):
            field.append(_FieldPart(_dollar_single(cfg, part), _Quote.SINGLE))
        elif isinstance(part, DblQuoted):
            for sub in _word_field(cfg, part.parts, _Quote.DOUBLE):
                field.append(_FieldPart(sub.val, _Quote.DOUBLE))
        elif isinstance(part, ParamExp):
            field.append(_FieldPart(_param_exp(cfg, part)))
        elif isinstance(part, CmdSubst):
            field.append(_FieldPart(_cmd_subst(cfg, part)))
        elif isinstance(part, ArithmExp):
            field.append(_FieldPart(str(arithm(cfg, part.x))))
        elif isinstance(part, ProcSubst):
            field.append(_FieldPart(_proc_subst(cfg, part)))
        else:
            raise TypeError(f"unhandled word part: {type(part).__name__}")
    return field


def _cmd_subst(cfg: Config, node: CmdSubst) -> str:
    if cfg.cmd_subst is None:
        raise UnexpectedCommandError(node)
    buf = io.StringIO()
    cfg.cmd_subst(buf, node)
    return buf.getvalue().replace("\x00", "").rstrip("\n")


def _split_ifs(cfg: Config, val: str) -> list[str]:
    out: list[str] = []
    cur: list[str] = []
    for ch in val:
        if cfg.is_ifs(ch):
            if cur:
                out.append("".join(cur))
                cur = []
        else:
            cur.append(ch)
    if cur:
        out.append("".join(cur))
    return out


def _word_fields(cfg: Config, parts: list) -> list[list[_FieldPart]]:
    result: list[list[_FieldPart]] = []
    cur: list[_FieldPart] = []
    allow_empty = False

    def flush() -> None:
        nonlocal cur
        if cur:
            result.append(cur)
            cur = []

    def split_add(val: str) -> None:
        for i, piece in enumerate(_split_ifs(cfg, val)):
            if i > 0:
                flush()
            cur.append(_FieldPart(piece))

    for i, part in enumerate(parts):
        if isinstance(part, Lit):
            s = part.value
            if i == 0:
                prefix, s = _expand_user(cfg, s)
                cur.append(_FieldPart(prefix, _Quote.SINGLE))
            if "\\" in s:
                s = _remove_backslashes(s)
            cur.append(_FieldPart(s))
        elif isinstance(part, SglQuoted):
            allow_empty = True
            cur.append(_FieldPart(_dollar_single(cfg, part), _Quote.SINGLE))
        elif isinstance(part, DblQuoted):
            if len(part.parts) == 1 and isinstance(part.parts[0], ParamExp):
                elems = _quoted_elem_fields(cfg, part.parts[0])
                if elems is not None:
                    for j, elem in enumerate(elems):
                        if j > 0:
                            flush()
                        cur.append(_FieldPart(elem, _Quote.DOUBLE))
                    continue
            allow_empty = True
            for sub in _word_field(cfg, part.parts, _Quote.DOUBLE):
                cur.append(_FieldPart(sub.val, _Quote.DOUBLE))
        elif isinstance(part, ParamExp):
            split_add(_param_exp(cfg, part))
        elif isinstance(part, CmdSubst):
            split_add(_cmd_subst(cfg, part))
        elif isinstance(part, ArithmExp):
            cur.append(_FieldPart(str(arithm(cfg, part.x))))
        elif isinstance(part, ProcSubst):
            split_add(_proc_subst(cfg, part))
        else:
            raise TypeError(f"unhandled word part: {type(part).__name__}")
    flush()
    if allow_empty and not result:
        result.append(cur)
    return result


def _node_lit(node: object) -> str:
    return node.lit() if isinstance(node, Word) else ""


def _quoted_elem_fields(cfg: Config, pe: ParamExp) -> Optional[list[str]]:
    """The elements of a quoted ``"$@"``, ``"$*"``, ``"${a[@]}"`` or ``"${!a@}"``."""
    if pe.length or pe.width:
        return None
    if pe.excl:
        if pe.names == ParNamesOperator.NAMES_PREFIX_WORDS:
            return _names_by_prefix(cfg, pe.param.value) or None
        return None
    name = pe.param.value
    if name == "*":
        return [cfg.ifs_join(cfg.env.get(name).items)]
    if name == "@":
        vr = cfg.env.get(name)
        return list(vr.items) if vr.is_set() else None
    index = _node_lit(pe.index)
    if index in ("@", "*"):
        vr = cfg.env.get(name)
        if vr.kind == ValueKind.INDEXED:
            return list(vr.items) if index == "@" else [cfg.ifs_join(vr.items)]
    return None


def _expand_user(cfg: Config, field: str) -> tuple[str, str]:
    if not field.startswith("~"):
        return "", field
    name = field[1:]
    rest = ""
    slash = name.find("/")
    if slash >= 0:
        name, rest = name[:slash], name[slash:]
    if name == "":
        home = cfg.env.get("HOME")
        if home.is_set():
            return str(home), rest
        if sys.platform == "win32":
            profile = cfg.env.get("USERPROFILE")
            if profile.is_set():
                return str(profile), rest
        return "", field
    home = cfg.env.get("HOME " + name)
    if home.is_set():
        return str(home), rest
    if pwd is None:
        return "", field
    try:
        return pwd.getpwnam(name).pw_dir, rest
    except KeyError:
        return "", field


# --- globbing --------------------------------------------------------------


_GLOBSTAR_RX = re.compile(".*", re.DOTALL)


def _path_join2(elem1: str, elem2: str) -> str:
    if elem1 == "":
        return elem2
    if elem1.endswith(os.sep):
        return elem1 + elem2
    return elem1 + os.sep + elem2


def _path_split(path: str) -> list[str]:
    return path.replace("/", os.sep).split(os.sep)


def _glob(cfg: Config, base: str, pat: str) -> list[str]:
    parts = _path_split(pat)
    matches = [""]
    if os.path.isabs(pat):
        matches[0] = os.sep if parts[0] == "" else parts[0] + os.sep
        parts = parts[1:]
    for i, part in enumerate(parts):
        want_dir = i < len(parts) - 1
        if part in ("", ".", ".."):
            matches = [_path_join2(d, part) for d in matches]
            continue
        if not _has_meta(part):
            plain = _unescape(part)
            found: list[str] = []
            for d in matches:
                full = d if os.path.isabs(d) else os.path.join(base, d)
                try:
                    st_is_dir = os.path.isdir(_path_join2(full, plain))
                    os.stat(_path_join2(full, plain))
                except OSError:
                    continue
                if want_dir and not st_is_dir:
                    continue
                found.append(_path_join2(d, plain))
            matches = found
            continue
        if part == "**" and cfg.glob_star:
            matches = [_path_join2(m, "") for m in matches]
            latest = matches
            while True:
                found = []
                for d in latest:
                    found = _glob_dir(cfg, base, d, _GLOBSTAR_RX, want_dir, found)
                if not found:
                    break
                matches = matches + found
                latest = found
            continue
        try:
            expr = _translate(part, filenames=True)
        except _PatternError:
            # If any glob part is not a valid pattern, don't glob.
            return []
        rx = re.compile("^" + expr + r"\Z", re.DOTALL)
        found = []
        for d in matches:
            found = _glob_dir(cfg, base, d, rx, want_dir, found)
        matches = found
    return matches


def _glob_dir(cfg: Config, base: str, d: str, rx: re.Pattern, want_dir: bool,
              matches: list[str]) -> list[str]:
    full = d if os.path.isabs(d) else os.path.join(base, d)
    entries = sorted(cfg.read_dir(full), key=lambda entry: entry.name)
    allow_hidden = rx.pattern.startswith("^\\.")
    for entry in entries:
        name = entry.name
        if want_dir:
            if entry.is_symlink():
                try:
                    list(cfg.read_dir(os.path.join(full, name)))
                except OSError:
                    continue
            elif not entry.is_dir():
                continue
        if not allow_hidden and name.startswith("."):
            continue
        if rx.match(name):
            matches.append(_path_join2(d, name))
    return matches


# --- parameter expansion ---------------------------------------------------


_OVERRIDING_UNSET = frozenset({
    ParExpOperator.ALTERNATE_UNSET,
    ParExpOperator.ALTERNATE_UNSET_OR_NULL,
    ParExpOperator.DEFAULT_UNSET,
    ParExpOperator.DEFAULT_UNSET_OR_NULL,
    ParExpOperator.ERROR_UNSET,
    ParExpOperator.ERROR_UNSET_OR_NULL,
    ParExpOperator.ASSIGN_UNSET,
    ParExpOperator.ASSIGN_UNSET_OR_NULL,
})
_REMOVE_OPS = frozenset({
    ParExpOperator.REM_SMALL_PREFIX,
    ParExpOperator.REM_LARGE_PREFIX,
    ParExpOperator.REM_SMALL_SUFFIX,
    ParExpOperator.REM_LARGE_SUFFIX,
})
_CASE_OPS = frozenset({
    ParExpOperator.UPPER_FIRST,
    ParExpOperator.UPPER_ALL,
    ParExpOperator.LOWER_FIRST,
    ParExpOperator.LOWER_ALL,
})


def _overriding_unset(pe: ParamExp) -> bool:
    return pe.exp is not None and pe.exp.op in _OVERRIDING_UNSET


def _names_by_prefix(cfg: Config, prefix: str) -> list[str]:
    return [name for name, _ in cfg.env.each() if name.startswith(prefix)]


def _param_exp(cfg: Config, pe: ParamExp) -> str:
    old = cfg.cur_param
    cfg.cur_param = pe
    try:
        return _param_exp_inner(cfg, pe)
    finally:
        cfg.cur_param = old


def _slice_pos(n: int, length: int) -> int:
    if n < 0:
        n += length
        return length if n < 0 else n
    return min(n, length)


def _param_exp_inner(cfg: Config, pe: ParamExp) -> str:
    name = pe.param.value
    index = pe.index
    if name in ("@", "*"):
        index = Word(parts=[Lit(name)])
    if name == "LINENO":
        vr = Variable(kind=ValueKind.STRING, value=str(pe.pos.line))
    else:
        vr = cfg.env.get(name)
    orig = vr
    _, vr = vr.resolve(cfg.env)
    if cfg.no_unset and vr.kind == ValueKind.UNSET and not _overriding_unset(pe):
        raise UnsetParameterError(pe, "unbound variable")

    s = _var_ind(cfg, vr, index)
    index_lit = _node_lit(index)
    elems = [s]
    if index_lit in ("@", "*"):
        if vr.kind == ValueKind.UNSET:
            elems = []
        elif vr.kind == ValueKind.INDEXED:
            elems = list(vr.items)

    if pe.length:
        n = len(elems) if index_lit in ("@", "*") else len(s)
        return str(n)
    if pe.excl:
        if pe.names is not None:
            strs = _names_by_prefix(cfg, name)
        elif orig.kind == ValueKind.NAMEREF:
            strs = [orig.value]
        elif vr.kind == ValueKind.INDEXED:
            strs = [str(i) for i, e in enumerate(vr.items) if e != ""]
        elif vr.kind == ValueKind.ASSOCIATIVE:
            strs = list(vr.mapping)
        elif not valid_name(s):
            raise ValueError("invalid indirect expansion")
        else:
            strs = [str(cfg.env.get(s))]
        return " ".join(sorted(strs))
    if pe.slice is not None:
        if pe.slice.offset is not None:
            s = s[_slice_pos(arithm(cfg, pe.slice.offset), len(s)):]
        if pe.slice.length is not None:
            s = s[:_slice_pos(arithm(cfg, pe.slice.length), len(s))]
        return s
    if pe.repl is not None:
        orig_pat = pattern(cfg, pe.repl.orig)
        with_ = literal(cfg, pe.repl.with_)
        return _replace(s, orig_pat, with_, pe.repl.all)
    if pe.exp is not None:
        return _apply_expansion(cfg, pe, name, vr, s, elems)
    return s


def _replace(s: str, pat: str, with_: str, replace_all: bool) -> str:
    try:
        rx = re.compile(_translate(pat), re.DOTALL)
    except _PatternError:
        return s
    locs = list(rx.finditer(s))
    if not replace_all:
        locs = locs[:1]
    out: list[str] = []
    last = 0
    for m in locs:
        out.append(s[last:m.start()])
        out.append(with_)
        last = m.end()
    out.append(s[last:])
    return "".join(out)


def _apply_expansion(cfg: Config, pe: ParamExp, name: str, vr: Variable,
                     s: str, elems: list[str]) -> str:
    arg = literal(cfg, pe.exp.word)
    op = pe.exp.op
    is_set = vr.is_set()
    if op == ParExpOperator.ALTERNATE_UNSET_OR_NULL:
        return arg if s != "" and is_set else s
    if op == ParExpOperator.ALTERNATE_UNSET:
        return arg if is_set else s
    if op in (ParExpOperator.DEFAULT_UNSET, ParExpOperator.DEFAULT_UNSET_OR_NULL):
        if op == ParExpOperator.DEFAULT_UNSET and is_set:
            return s
        return arg if s == "" else s
    if op in (ParExpOperator.ERROR_UNSET, ParExpOperator.ERROR_UNSET_OR_NULL):
        if op == ParExpOperator.ERROR_UNSET and is_set:
            return s
        if s == "":
            raise UnsetParameterError(pe, arg)
        return s
    if op in (ParExpOperator.ASSIGN_UNSET, ParExpOperator.ASSIGN_UNSET_OR_NULL):
        if op == ParExpOperator.ASSIGN_UNSET and is_set:
            return s
        if s == "":
            cfg.env_set(name, arg)
            return arg
        return s
    if op in _REMOVE_OPS:
        suffix = op in (ParExpOperator.REM_SMALL_SUFFIX, ParExpOperator.REM_LARGE_SUFFIX)
        small = op in (ParExpOperator.REM_SMALL_PREFIX, ParExpOperator.REM_SMALL_SUFFIX)
        return " ".join(_remove_pattern(e, arg, suffix, small) for e in elems)
    if op in _CASE_OPS:
        upper = op in (ParExpOperator.UPPER_FIRST, ParExpOperator.UPPER_ALL)
        change_all = op in (ParExpOperator.UPPER_ALL, ParExpOperator.LOWER_ALL)
        try:
            rx = re.compile(_translate(arg), re.DOTALL)
        except _PatternError:
            return s
        return " ".join(_change_case(e, rx, upper, change_all) for e in elems)
    if op == ParExpOperator.OTHER_PARAM_OPS:
        if arg == "Q":
            return _go_quote(s)
        if arg == "E":
            return _unquote_all(s)
        if arg in ("P", "A", "a"):
            raise ValueError(f"unhandled @{arg} param expansion")
        raise ValueError(f"unexpected @{arg} param expansion")
    return s


def _change_case(elem: str, rx: re.Pattern, upper: bool, change_all: bool) -> str:
    chars = list(elem)
    for i, ch in enumerate(chars):
        if rx.search(ch):
            changed = ch.upper() if upper else ch.lower()
            if len(changed) == 1:
                chars[i] = changed
            if not change_all:
                break
    return "".join(chars)


def _remove_pattern(s: str, pat: str, from_end: bool, shortest: bool) -> str:
    try:
        expr = _translate(pat, shortest=shortest)
    except _PatternError:
        return s
    if from_end and shortest:
        # .* finds the right-most shortest match
        expr = ".*(" + expr + r")\Z"
    elif from_end:
        expr = "(" + expr + r")\Z"
    else:
        expr = "^(" + expr + ")"
    m = re.search(expr, s, re.DOTALL)
    if m is not None:
        s = s[:m.start(1)] + s[m.end(1):]
    return s


_QUOTE_ESCAPES = {
    "\a": "\\a", "\b": "\\b", "\f": "\\f", "\n": "\\n", "\r": "\\r",
    "\t": "\\t", "\v": "\\v", "\\": "\\\\", '"': '\\"',
}


def _go_quote(s: str) -> str:
    out = ['"']
    for ch in s:
        code = ord(ch)
        if ch in _QUOTE_ESCAPES:
            out.append(_QUOTE_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif code < 0x80:
            out.append(f"\\x{code:02x}")
        elif code < 0x10000:
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\U{code:08x}")
    out.append('"')
    return "".join(out)


_UNQUOTE_SIMPLE = {"a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r",
                   "t": "\t", "v": "\v", "\\": "\\"}
_HEX_LEN = {"x": 2, "u": 4, "U": 8}


def _unquote_char(s: str) -> tuple[str, str]:
    """Decode one possibly escaped character; raises ValueError when invalid."""
    if s[0] != "\\":
        return s[0], s[1:]
    if len(s) <= 1:
        raise ValueError("invalid escape")
    c, rest = s[1], s[2:]
    if c in _UNQUOTE_SIMPLE:
        return _UNQUOTE_SIMPLE[c], rest
    if c in _HEX_LEN:
        width = _HEX_LEN[c]
        digits = rest[:width]
        if len(digits) < width or not re.fullmatch("[0-9a-fA-F]+", digits):
            raise ValueError("invalid escape")
        value = int(digits, 16)
        if c != "x" and (value > 0x10FFFF or 0xD800 <= value <= 0xDFFF):
            raise ValueError("invalid escape")
        return chr(value), rest[width:]
    if c in "01234567":
        digits = s[1:4]
        if len(digits) < 3 or not re.fullmatch("[0-7]+", digits):
            raise ValueError("invalid escape")
        value = int(digits, 8)
        if value > 0xFF:
            raise ValueError("invalid escape")
        return chr(value), s[4:]
    raise ValueError("invalid escape")


def _unquote_all(s: str) -> str:
    out: list[str] = []
    tail = s
    while tail:
        try:
            ch, tail = _unquote_char(tail)
        except ValueError:
            out.append("\x00")
            break
        out.append(ch)
    return "".join(out)


def _var_ind(cfg: Config, vr: Variable, idx: object) -> str:
    if idx is None:
        return str(vr)
    if vr.kind == ValueKind.STRING:
        if arithm(cfg, idx) == 0:
            return vr.value
    elif vr.kind == ValueKind.INDEXED:
        if _node_lit(idx) in ("*", "@"):
            return " ".join(vr.items)
        i = arithm(cfg, idx)
        if i < 0:
            raise ValueError("negative array index")
        if i < len(vr.items):
            return vr.items[i]
    elif vr.kind == ValueKind.ASSOCIATIVE:
        lit = _node_lit(idx)
        if lit in ("@", "*"):
            values = sorted(vr.mapping.values())
            return cfg.ifs_join(values) if lit == "*" else " ".join(values)
        if not isinstance(idx, Word):
            raise TypeError("associative array index must be a word")
        return vr.mapping.get(literal(cfg, idx), "")
    return ""