"""Evaluation of shell arithmetic expressions."""

from __future__ import annotations

import re
from typing import Callable, Optional

from .config import Config, prepare_config
from .environ import MAX_NAME_REF_DEPTH
from .words import (
    ArithmExpr,
    BinAritOperator,
    BinaryArithm,
    Lit,
    ParenArithm,
    UnAritOperator,
    UnaryArithm,
    Word,
    valid_name,
)

_BITS = 64
_MASK = (1 << _BITS) - 1
_INT_MIN = -(1 << (_BITS - 1))
_INT_MAX = (1 << (_BITS - 1)) - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _wrap(n: int) -> int:
    """Reduce to a signed 64-bit integer, wrapping on overflow."""
    n &= _MASK
    return n - (1 << _BITS) if n >> (_BITS - 1) else n


def _atoi(text: str) -> int:
    """A decimal integer, 0 if invalid and clamped if out of range."""
    if not _INT_RE.fullmatch(text):
        return 0
    return max(_INT_MIN, min(_INT_MAX, int(text)))


def _quo(x: int, y: int) -> int:
    if y == 0:
        raise ZeroDivisionError("division by zero")
    q = abs(x) // abs(y)
    return _wrap(-q if (x < 0) != (y < 0) else q)


def _rem(x: int, y: int) -> int:
    if y == 0:
        raise ZeroDivisionError("division by zero")
    r = abs(x) % abs(y)
    return -r if x < 0 else r


def _shl(x: int, y: int) -> int:
    amount = y & _MASK
    return 0 if amount >= _BITS else _wrap(x << amount)


def _shr(x: int, y: int) -> int:
    amount = y & _MASK
    if amount >= _BITS:
        return -1 if x < 0 else 0
    return x >> amount


def _pow(x: int, y: int) -> int:
    if y <= 0:
        return 1
    return _wrap(pow(x, y, 1 << _BITS))


_BINARY: dict[BinAritOperator, Callable[[int, int], int]] = {
    BinAritOperator.ADD: lambda x, y: _wrap(x + y),
    BinAritOperator.SUB: lambda x, y: _wrap(x - y),
    BinAritOperator.MUL: lambda x, y: _wrap(x * y),
    BinAritOperator.QUO: _quo,
    BinAritOperator.REM: _rem,
    BinAritOperator.POW: _pow,
    BinAritOperator.EQL: lambda x, y: int(x == y),
    BinAritOperator.GTR: lambda x, y: int(x > y),
    BinAritOperator.LSS: lambda x, y: int(x < y),
    BinAritOperator.NEQ: lambda x, y: int(x != y),
    BinAritOperator.LEQ: lambda x, y: int(x <= y),
    BinAritOperator.GEQ: lambda x, y: int(x >= y),
    BinAritOperator.AND: lambda x, y: x & y,
    BinAritOperator.OR: lambda x, y: x | y,
    BinAritOperator.XOR: lambda x, y: x ^ y,
    BinAritOperator.SHR: _shr,
    BinAritOperator.SHL: _shl,
    BinAritOperator.AND_ARIT: lambda x, y: int(x != 0 and y != 0),
    BinAritOperator.OR_ARIT: lambda x, y: int(x != 0 or y != 0),
}

_ASSIGN: dict[BinAritOperator, Callable[[int, int], int]] = {
    BinAritOperator.ASSGN: lambda _val, arg: arg,
    BinAritOperator.ADD_ASSGN: _BINARY[BinAritOperator.ADD],
    BinAritOperator.SUB_ASSGN: _BINARY[BinAritOperator.SUB],
    BinAritOperator.MUL_ASSGN: _BINARY[BinAritOperator.MUL],
    BinAritOperator.QUO_ASSGN: _quo,
    BinAritOperator.REM_ASSGN: _rem,
    BinAritOperator.AND_ASSGN: _BINARY[BinAritOperator.AND],
    BinAritOperator.OR_ASSGN: _BINARY[BinAritOperator.OR],
    BinAritOperator.XOR_ASSGN: _BINARY[BinAritOperator.XOR],
    BinAritOperator.SHL_ASSGN: _shl,
    BinAritOperator.SHR_ASSGN: _shr,
}


def _word_text(cfg: Config, word: Word) -> str:
    if all(isinstance(part, Lit) for part in word.parts):
        text = "".join(part.value for part in word.parts)
        if not text.startswith("~") and "\x00" not in text:
            return text
    # Deferred import: full word expansion itself evaluates arithmetic.
    from .expand import literal

    return literal(cfg, word)


def _name_of(expr: ArithmExpr) -> str:
    if not isinstance(expr, Word):
        raise TypeError(f"expected a variable name, got {type(expr).__name__}")
    return expr.lit()


def _eval_word(cfg: Config, word: Word) -> int:
    text = _word_text(cfg, word)
    depth = 0
    while valid_name(text):
        value = cfg.env_get(text)
        if value == "":
            break
        depth += 1
        if depth >= MAX_NAME_REF_DEPTH:
            break
        text = value
    return _atoi(text)


def _eval_unary(cfg: Config, expr: UnaryArithm) -> int:
    if expr.op in (UnAritOperator.INC, UnAritOperator.DEC):
        name = _name_of(expr.x)
        old = _atoi(cfg.env_get(name))
        delta = 1 if expr.op == UnAritOperator.INC else -1
        new = _wrap(old + delta)
        cfg.env_set(name, str(new))
        return old if expr.post else new
    val = _eval(cfg, expr.x)
    if expr.op == UnAritOperator.NOT:
        return int(val == 0)
    if expr.op == UnAritOperator.BIT_NEGATION:
        return ~val
    if expr.op == UnAritOperator.PLUS:
        return val
    return _wrap(-val)


def _eval_assign(cfg: Config, expr: BinaryArithm) -> int:
    name = _name_of(expr.x)
    val = _atoi(cfg.env_get(name))
    arg = _eval(cfg, expr.y)
    val = _ASSIGN[expr.op](val, arg)
    cfg.env_set(name, str(val))
    return val


def _eval_binary(cfg: Config, expr: BinaryArithm) -> int:
    if expr.op in _ASSIGN:
        return _eval_assign(cfg, expr)
    if expr.op == BinAritOperator.TERN_QUEST:
        cond = _eval(cfg, expr.x)
        branches = expr.y
        if not (
            isinstance(branches, BinaryArithm)
            and branches.op == BinAritOperator.TERN_COLON
        ):
            raise TypeError("ternary operator missing : after ?")
        return _eval(cfg, branches.x if cond == 1 else branches.y)
    left = _eval(cfg, expr.x)
    right = _eval(cfg, expr.y)
    operation: Optional[Callable[[int, int], int]] = _BINARY.get(expr.op)
    if operation is None:
        # the comma operator: the left side is evaluated but discarded
        return right
    return operation(left, right)


def _eval(cfg: Config, expr: ArithmExpr) -> int:
    if isinstance(expr, Word):
        return _eval_word(cfg, expr)
    if isinstance(expr, ParenArithm):
        return _eval(cfg, expr.x)
    if isinstance(expr, UnaryArithm):
        return _eval_unary(cfg, expr)
    if isinstance(expr, BinaryArithm):
        return _eval_binary(cfg, expr)
    raise TypeError(f"unexpected arithm expr: {type(expr).__name__}")


def arithm(cfg: Optional[Config], expr: ArithmExpr) -> int:
    """Evaluate an arithmetic expression with 64-bit integer semantics.

    Variable names are followed until a number is found; anything that is
    not a number counts as 0. Assignments update the configured environment.
    """
    cfg = prepare_config(cfg)
    return _eval(cfg, expr)