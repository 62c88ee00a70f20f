import os
from typing import Iterator

import pytest

from shexpand.config import (
    Config,
    ReadOnlyEnvironError,
    UnexpectedCommandError,
    UnsetParameterError,
)
from shexpand.environ import (
    Environ,
    ValueKind,
    Variable,
    WriteEnviron,
    list_environ,
)
from shexpand.expand import document, fields, literal, pattern
from shexpand.words import (
    ArithmExp,
    BinAritOperator,
    BinaryArithm,
    CmdSubst,
    DblQuoted,
    Expansion,
    Lit,
    ParamExp,
    ParExpOperator,
    ParNamesOperator,
    Pos,
    Replace,
    SglQuoted,
    Slice,
    Word,
)


class DictEnviron(WriteEnviron):
    def __init__(self, **variables: Variable) -> None:
        self.vars = dict(variables)

    def get(self, name: str) -> Variable:
        return self.vars.get(name, Variable())

    def each(self) -> Iterator[tuple[str, Variable]]:
        return iter(list(self.vars.items()))

    def set(self, name: str, vr: Variable) -> None:
        if vr.is_set():
            self.vars[name] = vr
        else:
            self.vars.pop(name, None)


class ReadOnlyEnviron(Environ):
    def get(self, name: str) -> Variable:
        return Variable()

    def each(self):
        return iter(())


def s(value: str) -> Variable:
    return Variable(kind=ValueKind.STRING, value=value)


def arr(*items: str) -> Variable:
    return Variable(kind=ValueKind.INDEXED, items=tuple(items))


def lit_word(text: str) -> Word:
    return Word(parts=[Lit(text)])


def param(name: str, **kwargs) -> ParamExp:
    return ParamExp(param=Lit(name), **kwargs)


def short(name: str) -> Word:
    return Word(parts=[param(name, short=True)])


def exp(name: str, op: ParExpOperator, arg=None) -> Word:
    word = lit_word(arg) if arg is not None else None
    return Word(parts=[param(name, exp=Expansion(op=op, word=word))])


@pytest.mark.parametrize(
    "make_cfg, want",
    [
        (lambda: None, ""),
        (lambda: Config(), ""),
        (lambda: Config(env=list_environ(*(f"{k}={v}" for k, v in os.environ.items()))), "value"),
    ],
    ids=["NilConfig", "ZeroConfig", "EnvConfig"],
)
def test_config_nils(monkeypatch, make_cfg, want):
    monkeypatch.setenv("EXPAND_GLOBAL", "value")
    assert literal(make_cfg(), short("EXPAND_GLOBAL")) == want


@pytest.mark.parametrize(
    "src, want",
    [
        ("{1..4}", ["1", "2", "3", "4"]),
        ("a{1..4}", ["a1", "a2", "a3", "a4"]),
    ],
)
def test_fields_idempotency(src, want):
    word = lit_word(src)
    for _ in range(2):
        assert fields(None, word) == want


def test_literal_none_word():
    assert literal(None, None) == ""


def test_default_values():
    cfg = Config(env=DictEnviron(empty=s("")))
    assert literal(cfg, exp("unset", ParExpOperator.DEFAULT_UNSET_OR_NULL, "def")) == "def"
    assert literal(cfg, exp("empty", ParExpOperator.DEFAULT_UNSET, "def")) == ""
    assert literal(cfg, exp("empty", ParExpOperator.DEFAULT_UNSET_OR_NULL, "def")) == "def"


def test_alternate_values():
    cfg = Config(env=DictEnviron(foo=s("x"), empty=s("")))
    assert literal(cfg, exp("foo", ParExpOperator.ALTERNATE_UNSET, "alt")) == "alt"
    assert literal(cfg, exp("empty", ParExpOperator.ALTERNATE_UNSET_OR_NULL, "alt")) == ""
    assert literal(cfg, exp("nope", ParExpOperator.ALTERNATE_UNSET, "alt")) == ""


def test_length():
    cfg = Config(env=DictEnviron(foo=s("héllo"), a=arr("x", "y")))
    assert literal(cfg, Word(parts=[param("foo", length=True)])) == "5"
    at = param("a", length=True, index=lit_word("@"))
    assert literal(cfg, Word(parts=[at])) == "2"


@pytest.mark.parametrize(
    "op, want",
    [
        (ParExpOperator.REM_SMALL_PREFIX, "b/c"),
        (ParExpOperator.REM_LARGE_PREFIX, "c"),
        (ParExpOperator.REM_SMALL_SUFFIX, "a/b"),
        (ParExpOperator.REM_LARGE_SUFFIX, "a"),
    ],
)
def test_remove_patterns(op, want):
    cfg = Config(env=DictEnviron(foo=s("a/b/c")))
    arg = "*/" if op in (ParExpOperator.REM_SMALL_PREFIX, ParExpOperator.REM_LARGE_PREFIX) else "/*"
    assert literal(cfg, exp("foo", op, arg)) == want


def test_replace():
    cfg = Config(env=DictEnviron(foo=s("abcb")))
    one = Word(parts=[param("foo", repl=Replace(orig=lit_word("b"), with_=lit_word("X")))])
    every = Word(parts=[param("foo", repl=Replace(orig=lit_word("b"), with_=lit_word("X"), all=True))])
    assert literal(cfg, one) == "aXcb"
    assert literal(cfg, every) == "aXcX"


def test_case_operators():
    cfg = Config(env=DictEnviron(foo=s("abc"), bar=s("ABC")))
    assert literal(cfg, exp("foo", ParExpOperator.UPPER_FIRST)) == "Abc"
    assert literal(cfg, exp("foo", ParExpOperator.UPPER_ALL)) == "ABC"
    assert literal(cfg, exp("bar", ParExpOperator.LOWER_ALL)) == "abc"


def test_slice():
    cfg = Config(env=DictEnviron(foo=s("hello")))
    word = Word(parts=[param("foo", slice=Slice(offset=lit_word("1"), length=lit_word("2")))])
    assert literal(cfg, word) == "el"
    neg = Word(parts=[param("foo", slice=Slice(offset=lit_word("-3")))])
    assert literal(cfg, neg) == "llo"


def test_no_unset_raises():
    cfg = Config(no_unset=True)
    with pytest.raises(UnsetParameterError, match="foo: unbound variable"):
        literal(cfg, short("foo"))


def test_error_unset_or_null():
    with pytest.raises(UnsetParameterError, match="foo: oops"):
        literal(Config(), exp("foo", ParExpOperator.ERROR_UNSET_OR_NULL, "oops"))


def test_assign_default_updates_env():
    env = DictEnviron()
    cfg = Config(env=env)
    assert literal(cfg, exp("foo", ParExpOperator.ASSIGN_UNSET_OR_NULL, "bar")) == "bar"
    assert str(env.get("foo")) == "bar"


def test_assign_read_only_environ():
    cfg = Config(env=ReadOnlyEnviron())
    with pytest.raises(ReadOnlyEnvironError):
        literal(cfg, exp("foo", ParExpOperator.ASSIGN_UNSET, "bar"))


def test_cmd_subst_without_runner():
    with pytest.raises(UnexpectedCommandError, match="unexpected command substitution at 1:3"):
        literal(None, Word(parts=[CmdSubst(pos=Pos(line=1, col=3))]))


def test_cmd_subst_strips_trailing_newlines():
    cfg = Config(cmd_subst=lambda out, node: out.write("out\x00put\n\n"))
    assert literal(cfg, Word(parts=[CmdSubst()])) == "output"


def test_field_splitting():
    cfg = Config(env=DictEnviron(foo=s("a b  c")))
    assert fields(cfg, short("foo")) == ["a", "b", "c"]
    quoted = Word(parts=[DblQuoted(parts=[param("foo", short=True)])])
    assert fields(cfg, quoted) == ["a b  c"]


def test_custom_ifs():
    cfg = Config(env=DictEnviron(IFS=s(":"), foo=s("a:b c")))
    assert fields(cfg, short("foo")) == ["a", "b c"]


def test_empty_quotes_give_empty_field():
    assert fields(None, Word(parts=[SglQuoted("")])) == [""]
    assert fields(None, short("unset")) == []


def test_tilde_expansion():
    cfg = Config(env=DictEnviron(HOME=s("/home/u")))
    assert literal(cfg, lit_word("~/bin")) == "/home/u/bin"
    assert fields(cfg, lit_word("~/bin")) == ["/home/u/bin"]
    other = Config(env=DictEnviron(**{"HOME bob": s("/users/bob")}))
    assert literal(other, lit_word("~bob/x")) == "/users/bob/x"


def test_arithmetic_expansion():
    expr = BinaryArithm(op=BinAritOperator.ADD, x=lit_word("2"), y=lit_word("3"))
    assert literal(None, Word(parts=[ArithmExp(x=expr)])) == "5"


def test_document_backslashes():
    assert document(None, lit_word('a\\"b\\x')) == 'a"b\\x'


def test_document_keeps_tilde():
    cfg = Config(env=DictEnviron(HOME=s("/home/u")))
    assert document(cfg, lit_word("~/x")) == "~/x"


def test_pattern_quotes_quoted_parts():
    word = Word(parts=[Lit("a*"), SglQuoted("b*")])
    assert pattern(None, word) == "a*b\\*"


def test_names_by_prefix():
    env = DictEnviron(pre_b=s("1"), pre_a=s("2"), other=s("3"))
    word = Word(parts=[param("pre_", excl=True, names=ParNamesOperator.NAMES_PREFIX_WORDS)])
    assert literal(Config(env=env), word) == "pre_a pre_b"


def test_indirect_expansion():
    env = DictEnviron(ref=s("target"), target=s("value"))
    assert literal(Config(env=env), Word(parts=[param("ref", excl=True)])) == "value"


def test_indirect_invalid_name():
    env = DictEnviron(ref=s("1bad"))
    with pytest.raises(ValueError, match="invalid indirect expansion"):
        literal(Config(env=env), Word(parts=[param("ref", excl=True)]))


def test_quote_operator():
    cfg = Config(env=DictEnviron(foo=s('a"b\n')))
    assert literal(cfg, exp("foo", ParExpOperator.OTHER_PARAM_OPS, "Q")) == '"a\\"b\\n"'


def test_escape_operator():
    cfg = Config(env=DictEnviron(foo=s("a\\tb")))
    assert literal(cfg, exp("foo", ParExpOperator.OTHER_PARAM_OPS, "E")) == "a\tb"


def test_array_index():
    cfg = Config(env=DictEnviron(a=arr("x", "y")))
    assert literal(cfg, Word(parts=[param("a", index=lit_word("1"))])) == "y"
    assert literal(cfg, Word(parts=[param("a", index=lit_word("5"))])) == ""
    with pytest.raises(ValueError, match="negative array index"):
        literal(cfg, Word(parts=[param("a", index=lit_word("-1"))]))


def test_associative_index():
    assoc = Variable(kind=ValueKind.ASSOCIATIVE, mapping={"k": "v", "j": "w"})
    cfg = Config(env=DictEnviron(m=assoc))
    assert literal(cfg, Word(parts=[param("m", index=lit_word("k"))])) == "v"
    assert literal(cfg, Word(parts=[param("m", index=lit_word("@"))])) == "v w"


def test_lineno():
    word = Word(parts=[param("LINENO", pos=Pos(line=7))])
    assert literal(None, word) == "7"


def test_brace_fields():
    assert fields(None, lit_word("a{b,c}")) == ["ab", "ac"]


@pytest.fixture
def glob_dir(tmp_path):
    for name in ("a.sh", "b.sh", "c.txt", ".hidden.sh"):
        (tmp_path / name).write_text("x")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "d.sh").write_text("x")
    return tmp_path


def glob_cfg(base, **kwargs) -> Config:
    return Config(env=DictEnviron(PWD=s(str(base))), read_dir=os.scandir, **kwargs)


def test_glob_matches(glob_dir):
    assert fields(glob_cfg(glob_dir), lit_word("*.sh")) == ["a.sh", "b.sh"]


def test_glob_hidden(glob_dir):
    assert fields(glob_cfg(glob_dir), lit_word(".*.sh")) == [".hidden.sh"]


def test_glob_subdir(glob_dir):
    assert fields(glob_cfg(glob_dir), lit_word("*/*.sh")) == [os.path.join("sub", "d.sh")]


def test_glob_no_match(glob_dir):
    assert fields(glob_cfg(glob_dir), lit_word("*.nope")) == ["*.nope"]
    assert fields(glob_cfg(glob_dir, null_glob=True), lit_word("*.nope")) == []


def test_glob_quoted_is_literal(glob_dir):
    word = Word(parts=[DblQuoted(parts=[Lit("*.sh")])])
    assert fields(glob_cfg(glob_dir), word) == ["*.sh"]


def test_glob_disabled_without_read_dir(glob_dir):
    cfg = Config(env=DictEnviron(PWD=s(str(glob_dir))))
    assert fields(cfg, lit_word("*.sh")) == ["*.sh"]


def test_glob_absolute(glob_dir):
    word = lit_word(str(glob_dir) + os.sep + "*.txt")
    assert fields(glob_cfg(glob_dir), word) == [str(glob_dir / "c.txt")]


def test_globstar(glob_dir):
    result = fields(glob_cfg(glob_dir, glob_star=True), lit_word("**/*.sh"))
    assert sorted(result) == sorted(["a.sh", "b.sh", os.path.join("sub", "d.sh")])