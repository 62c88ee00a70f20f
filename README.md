# shexpand

Shell-style word expansion as a library. Given a word built from shell word
parts, it performs the expansions a POSIX or bash shell would: brace
expansion, tilde expansion, parameter expansion, arithmetic expansion,
command substitution (through a hook you supply), field splitting on `IFS`,
globbing and quote removal. It also evaluates arithmetic expressions,
expands `printf` formats, splits lines the way `read` does, and recognises
shell scripts on disk.

## Installation

```
pip install shexpand
```

## What it does not do

- It has no shell parser. Words and arithmetic expressions are built
  directly from the node classes in `shexpand.words`.
- It runs no commands. Command and process substitutions are handed to the
  `cmd_subst` and `proc_subst` callables of a `Config`; without them,
  expansion raises an error.
- It has no command-line tool and does not format or print shell code.

## Building words

`shexpand.words` holds the node classes: `Lit`, `SglQuoted`, `DblQuoted`,
`ParamExp` (with `Slice`, `Replace`, `Expansion`, `ParExpOperator` and
`ParNamesOperator`), `CmdSubst`, `ProcSubst`, `ArithmExp`, `BraceExp`,
and the arithmetic nodes `ParenArithm`, `UnaryArithm` / `UnAritOperator`
and `BinaryArithm` / `BinAritOperator`. A `Word` collects parts;
`Word.lit()` returns its text when every part is a `Lit`, otherwise `""`.
`valid_name(name)` checks a shell variable name.

Brace expansion happens in two steps:

```python
from shexpand.words import Word, Lit, split_braces, braces

word = Word(parts=[Lit("a{b,c}d{1..3}")])
split_braces(word)                 # turns brace syntax into BraceExp parts, in place
[w.lit() for w in braces(word)]    # ['abd1', 'abd2', 'abd3', 'acd1', ...]
```

`split_braces` returns whether any braces were found; malformed braces stay
literal text. `braces` returns one `Word` per alternative, supporting lists
`{a,b}` and numeric or letter sequences `{x..y[..step]}`.

## Expanding

```python
from shexpand.config import Config
from shexpand.environ import list_environ
from shexpand.expand import literal, document, pattern, fields
from shexpand.words import Word, Lit, ParamExp

cfg = Config(env=list_environ("HOME=/home/user", "NAME=big world"))
word = Word(parts=[Lit("~/"), ParamExp(param=Lit("NAME"))])

literal(cfg, word)   # '/home/user/big world'
fields(cfg, word)    # ['/home/user/big', 'world']
```

- `literal(cfg, word)` expands to a single string, as in an assignment.
- `document(cfg, word)` expands as if inside double quotes: no tilde
  expansion.
- `pattern(cfg, word)` expands to a glob pattern, escaping pattern
  characters that came from quoted parts.
- `fields(cfg, *words)` expands words as command arguments, with brace
  expansion, field splitting and globbing.

Passing `None` as the config behaves like an empty `Config`.

### Config

`Config` fields:

- `env`: an `Environ`; `None` means no variables are set.
- `cmd_subst(stream, node)`: writes a command substitution's output to a
  text stream. Trailing newlines and NUL characters are removed.
- `proc_subst(node)`: returns the path for a process substitution.
- `read_dir(path)`: lists a directory as entries with `name`, `is_dir()`
  and `is_symlink()`, as `os.scandir` does. Globbing is off while it is
  `None`.
- `glob_star`: `**` matches any number of directories.
- `null_glob`: a pattern that matches nothing yields no fields.
- `no_unset`: expanding an unset variable raises `UnsetParameterError`.

`prepare_config(cfg)` fills in an empty environment and reads `IFS`; the
expansion functions call it themselves. `Config.is_ifs`, `Config.ifs_join`,
`Config.env_get` and `Config.env_set` are the helpers they use.

Parameter expansion supports defaults and alternates (`-`, `:-`, `+`,
`:+`, `=`, `:=`, `?`, `:?`), prefix and suffix removal, search and replace,
slicing, length, indirection (`${!name}`, `${!prefix@}`), case changes,
`${name@Q}` and `${name@E}`, indexed and associative arrays, name
references, `$@` / `$*`, and `LINENO` taken from the node's position.

## Environments

`shexpand.environ` provides `Variable` (a frozen dataclass with `kind`,
`value`, `items`, `mapping` and the `local`, `exported` and `read_only`
flags), `ValueKind`, and the abstract `Environ` (`get`, `each`) and
`WriteEnviron` (adds `set`). `Variable.is_set()`, `str(variable)` and
`Variable.resolve(env)` follow name references up to 100 levels.

Ready-made read-only environments:

- `list_environ("A=1", "B=2")` returns a `ListEnviron`: sorted, all
  exported, the last value for a name wins and pairs without a name are
  dropped. On Windows names are uppercased; `list_environ_with_upper`
  chooses explicitly.
- `func_environ(fn)` returns a `FuncEnviron` wrapping a function from names
  to values; empty strings count as unset and `each()` yields nothing.

Assignments during expansion (`${x:=y}`, arithmetic `x += 1`, `x++`) need
an environment that is a `WriteEnviron`; otherwise `ReadOnlyEnvironError`
is raised.

## Arithmetic, printf and read

- `shexpand.arith.arithm(cfg, expr)` evaluates an arithmetic expression
  tree with wrapping 64-bit integers. Names are followed to their values;
  anything that is not a number counts as 0. Division by zero raises
  `ZeroDivisionError`.
- `shexpand.printf.format_string(cfg, fmt, args)` expands a `printf`
  format (backslash escapes and `%s %d %i %u %o %x %c %%` with flags and
  widths) and returns the text and the number of arguments used. With
  `args=None` only escapes are processed. Invalid formats raise
  `FormatError`.
- `shexpand.printf.read_fields(cfg, s, n, raw)` splits a line on `IFS`
  into at most `n` fields (`-1` for no limit), the last holding the rest;
  unless `raw`, backslashes escape the next character.

## Script detection

`shexpand.fileutil.has_shebang(data)` reports whether bytes start with an
`sh` or `bash` shebang, directly or through `env`. `could_be_script(path)`
returns a `ScriptConfidence`: `NOT_SCRIPT` for directories, symlinks,
hidden files, other extensions and files too small for a shebang;
`IS_SCRIPT` for `.sh` and `.bash` files; `IF_SHEBANG` otherwise. It does
not read the file.

## Errors

In `shexpand.config`:

- `UnexpectedCommandError`: a command substitution was met and the config
  has no `cmd_subst`.
- `UnsetParameterError`: `${x?msg}` on an unset or empty variable, or any
  unset variable when `no_unset` is on.
- `ReadOnlyEnvironError`: an assignment into an environment that cannot
  be written.