"""The builtins other than ``export``: echo, pwd, env, cd, exit and unset.

Each builtin writes to the streams it is given and returns its exit
status. ``exit`` leaves the shell by raising :class:`ShellExit`, whose
``message``, when set, is for the caller to report.
"""

from __future__ import annotations

import os
import re
from collections.abc import Sequence
from typing import TextIO

from .environment import Environment
from .errors import ShellExit, parse_long, print_error

_EXIT_ARGUMENT = re.compile(r"[\t\n\x0b\x0c\r ]*[-+0-9][0-9]*")


def _is_no_newline_flag(arg: str) -> bool:
    return len(arg) > 1 and arg.startswith("-") and set(arg[1:]) == {"n"}


def _first_operand(args: Sequence[str]) -> int:
    for index, arg in enumerate(args):
        if not _is_no_newline_flag(arg):
            return index
    return 0


def echo(env: Environment, args: Sequence[str], out: TextIO) -> int:
    """Print each argument followed by a space, then a newline.

    Leading ``-n`` style flags suppress the newline; when every argument
    is such a flag, all of them are printed as ordinary words.
    """
    start = _first_operand(args)
    out.write("".join(f"{arg} " for arg in args[start:]))
    if start == 0:
        out.write("\n")
    out.flush()
    return 0


def pwd(env: Environment, args: Sequence[str], out: TextIO, err: TextIO) -> int:
    """Print the current working directory."""
    if len(args) > 1:
        print_error("pwd", "too many arguments", stream=err)
        return 1
    try:
        cwd = os.getcwd()
    except OSError as exc:
        print_error("pwd", exc.strerror, stream=err)
        return 1
    out.write(f"{cwd}\n")
    out.flush()
    return 0


def env_command(env: Environment, args: Sequence[str], out: TextIO) -> int:
    """Print the environment as ``KEY=VALUE`` lines; arguments are ignored."""
    for line in env.to_envp():
        out.write(f"{line}\n")
    out.flush()
    return 0


def _change_to_variable(env: Environment, key: str, err: TextIO) -> bool:
    target = env.get_env(key)
    try:
        if target is None:
            raise FileNotFoundError
        os.chdir(target)
    except OSError:
        print_error("cd", f"{key} is not set", stream=err)
        return False
    return True


def cd(env: Environment, args: Sequence[str], err: TextIO) -> int:
    """Change directory to the argument, ``$HOME`` without one, ``$OLDPWD`` for ``-``."""
    if not args:
        if not _change_to_variable(env, "HOME", err):
            return 1
    else:
        if len(args) > 1:
            print_error("cd: too many arguments", stream=err)
            return 1
        target = args[0]
        if target == "-":
            if not _change_to_variable(env, "OLDPWD", err):
                return 1
        else:
            try:
                os.chdir(target)
            except OSError as exc:
                print_error("cd", target, exc.strerror, stream=err)
                return 1
    env.update_after_cd()
    return 0


def exit_command(
    env: Environment, args: Sequence[str], last_status: int, err: TextIO
) -> int:
    """Leave the shell by raising :class:`ShellExit`.

    Without arguments the status is ``last_status``. A non-numeric or
    out-of-range argument leaves with status 2. With more than one
    numeric argument nothing happens except a diagnostic, and 1 is returned.
    """
    if not args:
        raise ShellExit(last_status % 256)
    first = args[0]
    if not _EXIT_ARGUMENT.fullmatch(first):
        raise ShellExit(2, f"exit: {first}: numeric argument required")
    if len(args) > 1:
        print_error("exit", "too many arguments", stream=err)
        return 1
    raise ShellExit(parse_long(first) % 256)


def unset(env: Environment, args: Sequence[str]) -> int:
    """Remove each named variable; ``_`` and the empty name are left alone."""
    for name in args:
        if name in ("", "_"):
            continue
        env.remove(name)
    return 0