# minish

`minish` is the execution core of a small shell. It takes commands that have
already been parsed into `Command` objects and runs them. It handles the
built-in commands, external programs found on `PATH`, input and output
redirections, and pipelines.

## Modules

### `minish.environment`

`Environment` holds two tables of `Variable` objects. Each `Variable` has a
`key`, a `value` and an `assigned` flag.

- `environ` is what child processes receive.
- `export` is what `export` lists. It also holds names that were declared
  without a value.

Methods:

- `Environment.from_envp(envp, argv0, cwd=None)` builds both tables from
  `KEY=VALUE` strings or from a mapping.
  - It adds `PWD` (set to `cwd`, or the current directory), `SHLVL=0` and
    `_=argv0` when they are missing.
  - It gives the export table a valueless `OLDPWD`.
- Lookups:
  - `get_env(key)` and `get_export(key)` return the value, or `None`.
  - `has_env(key)` and `has_export(key)` test whether the name is present.
- Changes:
  - `add(key, value="", assigned=True)` replaces the variable in both tables
    and moves it to the end.
  - With `assigned=False`, `add` declares the name only in the export table,
    and only if it is not already there.
  - `remove(key)` drops the name from both tables.
- Output:
  - `to_envp()` returns the environment as `KEY=VALUE` strings, in definition
    order.
  - `sorted_export()` sorts the export table by the byte order of the names
    and returns the variables.
- `update_after_cd(cwd=None)` refreshes `PWD` and `OLDPWD` after the working
  directory has changed.
- `copy()` returns an independent copy of both tables.

### `minish.builtins`

Each builtin writes to the streams it is given and returns its exit status.

- `echo(env, args, out)` prints each argument followed by a space.
  - Leading `-n` flags suppress the final newline. `-nnn` counts as well.
  - When every argument is such a flag, all of them are printed as ordinary
    words.
- `pwd(env, args, out, err)` prints the current directory.
- `env_command(env, args, out)` prints the environment.
- `cd(env, args, err)` changes directory.
  - With no argument it goes to `$HOME`.
  - With `-` it goes to `$OLDPWD`.
  - With more than one argument it fails with status 1.
  - On success it updates `PWD` and `OLDPWD`.
- `exit_command(env, args, last_status, err)` raises `ShellExit`.
  - A non-numeric or out-of-range argument raises it with status 2.
  - With more than one numeric argument, `exit` only reports an error and
    returns 1.
- `unset(env, args)` removes names. It leaves `_` and the empty name alone.

### `minish.export`

- `parse_export_arg(arg)` returns a tuple `(ExportKind, name, value)`.
  - The kind is `NAME`, `ASSIGN` for `NAME=value`, or `APPEND` for
    `NAME+=value`.
  - It raises `ValueError` for an invalid identifier.
- `export_command(env, args, out, err)` applies each argument in turn.
  - An invalid identifier is reported and sets the status to 1, but the
    remaining arguments are still applied.
  - The name `_` is ignored.
  - With no arguments it prints the sorted `declare -x` listing.

### `minish.redirect`

`Command` holds a command's `name`, `arguments` and `redirections`. Each
`Redirection` has these fields:

- `filename`
- `output`
- `append`
- `heredoc`
- `heredoc_file`
- `ambiguous`

`open_redirections(command)` opens the redirections in order, and later ones
replace earlier ones. It returns a `Streams` object, which is a context
manager holding `stdin` and `stdout`.

It raises `RedirectionError` (status 1) in these cases:

- an ambiguous redirect;
- a file that cannot be opened;
- an output redirection onto a directory.

A here-document file is opened and then unlinked. If it cannot be opened,
`ShellExit` is raised with status 1.

### `minish.executor`

`Executor(env, stdout=None, stderr=None, stdin=None, last_status=0)` runs
commands and records the last exit status.

- `run(commands)` runs one command with `run_simple`, or several with
  `run_pipeline`.
- `run_simple(command)` runs a builtin in-process, so its changes stay in
  `env`. Any other program is started as a child process.
- `run_pipeline(commands)` connects the commands with pipes.
  - The status comes from the last command.
  - Builtins in a pipeline work on a copy of the environment, so their
    changes are not kept.
- A process killed by a signal gives status 128 plus the signal number.
- `ShellExit` raised by `exit` in a single command is passed on to the caller.

Helpers:

- `resolve_command(name, env)` finds the program to run.
  - A name containing `/` is used as it is.
  - Any other name is looked up in the exported `PATH`.
  - It returns `None` when there is no `PATH`.
  - It raises `CommandError` with status 126 for a directory or a file that
    cannot be executed.
  - It raises `CommandError` with status 127 for a missing file or an unknown
    command.
- `build_argv(name, arguments)` builds the argument vector.
- `is_builtin(name)` tells builtins apart from external programs.

### `minish.errors`

- `print_error(*parts, stream=None)` writes the parts joined by `": "` as one
  line. It writes to standard error by default.
- `parse_long(text)` reads a signed 64-bit `exit` status.
- `ShellExit` carries an exit status, and optionally a message, out of the
  shell.

## Example

```python
import io
import os

from minish.builtins import echo, env_command
from minish.environment import Environment
from minish.export import export_command

env = Environment.from_envp(["HOME=/home/demo", "PATH=/usr/bin:/bin"], "minish", os.getcwd())

out = io.StringIO()
err = io.StringIO()
export_command(env, ["GREETING=hello", "GREETING+=-world"], out, err)
print(env.get_env("GREETING"))      # hello-world

echo(env, ["-n", "no", "newline"], out)
env_command(env, [], out)
print(out.getvalue())
```

## What it does not do

`minish` has no command-line program and no interactive prompt, and it does
not read input lines itself. It does not tokenize or parse command text, and
it does not expand variables or quotes. It does not collect here-document
text either: a `Redirection` with `heredoc=True` must point `heredoc_file` at
a file that has already been written. Callers build `Command` objects
themselves and pass them to an `Executor`.