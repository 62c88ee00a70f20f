"""printf-style format strings and splitting of input lines into fields."""

from __future__ import annotations

from typing import Optional, Sequence

from .config import Config, prepare_config

_SIMPLE_ESCAPES = {
    ord("a"): 0x07,
    ord("b"): 0x08,
    ord("e"): 0x1B,
    ord("E"): 0x1B,
    ord("f"): 0x0C,
    ord("n"): 0x0A,
    ord("r"): 0x0D,
    ord("t"): 0x09,
    ord("v"): 0x0B,
    ord("\\"): ord("\\"),
    ord("'"): ord("'"),
    ord('"'): ord('"'),
    ord("?"): ord("?"),
}
_OCTAL_START = frozenset(b"01234567")
_DECIMAL = frozenset(b"0123456789")
_HEX = _DECIMAL | frozenset(b"abcdefABCDEF")
_HEX_WIDTH = {ord("x"): 2, ord("u"): 4, ord("U"): 8}

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MASK = (1 << 64) - 1

_BASE_DIGITS = {
    2: frozenset("01"),
    8: frozenset("01234567"),
    10: frozenset("0123456789"),
    16: frozenset("0123456789abcdefABCDEF"),
}


class FormatError(ValueError):
    """A format string is malformed."""


def _read_digits(src: bytes, start: int, limit: int, hexadecimal: bool) -> str:
    allowed = _HEX if hexadecimal else _DECIMAL
    end = start
    while end < len(src) and end - start < limit and src[end] in allowed:
        end += 1
    return src[start:end].decode("ascii")


def _octal_byte(digits: str) -> int:
    if any(d in "89" for d in digits):
        return 0
    return min(int(digits, 8), 0xFF)


def _encode_rune(n: int) -> bytes:
    if 0xD800 <= n <= 0xDFFF or n > 0x10FFFF:
        n = 0xFFFD
    return chr(n).encode("utf-8")


def _parse_int(text: str) -> int:
    """Parse an integer with an optional base prefix; invalid input gives 0."""
    sign = 1
    body = text
    if body.startswith(("+", "-")):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    prefix = body[:2].lower()
    if prefix == "0x":
        base, digits = 16, body[2:]
    elif prefix == "0b":
        base, digits = 2, body[2:]
    elif prefix == "0o":
        base, digits = 8, body[2:]
    elif body.startswith("0") and len(body) > 1:
        base, digits = 8, body[1:]
    else:
        base, digits = 10, body
    if not digits or not set(digits) <= _BASE_DIGITS[base]:
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, sign * int(digits, base)))


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def format_string(
    cfg: Optional[Config], fmt: str, args: Optional[Sequence[str]]
) -> tuple[str, int]:
    """Expand a printf format string, returning the text and the arguments used.

    When ``args`` is ``None`` only backslash escapes are processed and ``%``
    is kept as is.
    """
    prepare_config(cfg)
    src = _encode(fmt)
    out = bytearray()
    remaining = list(args) if args is not None else None
    spec: Optional[str] = None
    i = 0
    while i < len(src):
        c = src[i]
        if c == ord("\\"):
            i += 1
            if i >= len(src):
                out += b"\\"
                break
            c = src[i]
            if c in _SIMPLE_ESCAPES:
                out.append(_SIMPLE_ESCAPES[c])
                i += 1
                continue
            if c in _OCTAL_START:
                digits = _read_digits(src, i, 3, hexadecimal=False)
                out.append(_octal_byte(digits))
                i += len(digits)
                continue
            if c in _HEX_WIDTH:
                digits = _read_digits(src, i + 1, _HEX_WIDTH[c], hexadecimal=True)
                if digits:
                    n = int(digits, 16)
                    if n == 0:
                        # Like bash, a NUL ends the whole output.
                        break
                    if c == ord("x"):
                        out.append(n)
                    else:
                        out += _encode_rune(n)
                    i += 1 + len(digits)
                    continue
            out += b"\\" + bytes([c])
            i += 1
            continue

        ch = chr(c)
        if spec is not None:
            if ch == "%":
                out += b"%"
                spec = None
            elif ch == "c":
                byte = 0
                if remaining:
                    arg = _encode(remaining.pop(0))
                    if arg:
                        byte = arg[0]
                out.append(byte)
                spec = None
            elif ch in "+- ":
                if len(spec) > 1:
                    raise FormatError(f"invalid format char: {ch}")
                spec += ch
            elif ch in "0123456789":
                spec += ch
            elif ch in "sdiuox":
                arg = remaining.pop(0) if remaining else ""
                value: object = arg
                if ch != "s":
                    n = _parse_int(arg)
                    value = n if ch in "id" else n & _UINT64_MASK
                    if ch in "iu":
                        ch = "d"
                out += _encode((spec + ch) % value)
                spec = None
            else:
                raise FormatError(f"invalid format char: {ch}")
        elif remaining is not None and ch == "%":
            spec = "%"
        else:
            out.append(c)
        i += 1

    if spec is not None:
        raise FormatError("missing format char")
    used = len(args) - len(remaining) if args is not None and remaining is not None else 0
    return out.decode("utf-8", "surrogateescape"), used


def read_fields(cfg: Optional[Config], s: str, n: int, raw: bool) -> list[str]:
    """Split a line into fields on the IFS, as the read builtin does.

    At most ``n`` fields are returned, the last holding the rest of the line;
    ``-1`` means no limit. Unless ``raw`` is set, backslashes escape the next
    character and are removed.
    """
    cfg = prepare_config(cfg)
    spans: list[list[int]] = []
    chars: list[str] = []
    in_field = False
    escaped = False
    for ch in s:
        if in_field:
            if cfg.is_ifs(ch) and (raw or not escaped):
                spans[-1][1] = len(chars)
                in_field = False
        elif not cfg.is_ifs(ch) and (raw or not escaped):
            spans.append([len(chars), -1])
            in_field = True
        if ch == "\\":
            if raw or escaped:
                chars.append(ch)
            escaped = not escaped
            continue
        chars.append(ch)
        escaped = False
    if not spans:
        return []
    if in_field:
        spans[-1][1] = len(chars)

    if n == 1:
        # include leading and trailing separators
        spans = [[0, len(chars)]]
    elif 0 < n < len(spans):
        spans[n - 1][1] = spans[-1][1]
        spans = spans[:n]
    return ["".join(chars[start:end]) for start, end in spans]