"""The ``export`` builtin: defining, appending to and listing variables."""

from __future__ import annotations

import enum
import re
from collections.abc import Sequence
from typing import TextIO

from .environment import Environment
from .errors import print_error

_NAME_TAIL = re.compile(r"[A-Za-z0-9_]*")


class ExportKind(enum.Enum):
    """What an ``export`` argument asks for."""

    NAME = "name"
    ASSIGN = "assign"
    APPEND = "append"


def _check_name(arg: str, name: str) -> None:
    if not _NAME_TAIL.fullmatch(name[1:]):
        raise ValueError(f"export: {arg}: not a valid identifier")


def parse_export_arg(arg: str) -> tuple[ExportKind, str, str]:
    """Split an ``export`` argument into its kind, name and value.

    ``NAME`` exports a name without a value, ``NAME=VALUE`` assigns and
    ``NAME+=VALUE`` appends. The name must start with a letter or ``_``
    and continue with letters, digits or ``_``; otherwise
    :class:`ValueError` is raised.
    """
    if not arg or not (arg[0] == "_" or (arg[0].isascii() and arg[0].isalpha())):
        raise ValueError(f"export: {arg}: not a valid identifier")
    rest = arg[1:]
    if "=" not in rest:
        _check_name(arg, arg)
        return ExportKind.NAME, arg, ""
    if "+=" in rest:
        split = arg.index("+")
        name = arg[:split]
        _check_name(arg, name)
        return ExportKind.APPEND, name, arg[split + 2:]
    split = arg.index("=")
    name = arg[:split]
    _check_name(arg, name)
    return ExportKind.ASSIGN, name, arg[split + 1:]


def _print_exports(env: Environment, out: TextIO) -> None:
    for variable in env.sorted_export():
        if variable.assigned:
            out.write(f'declare -x {variable.key}="{variable.value}"\n')
        else:
            out.write(f"declare -x {variable.key}\n")
    out.flush()


def export_command(
    env: Environment, args: Sequence[str], out: TextIO, err: TextIO
) -> int:
    """Run ``export``: apply each argument, or list the sorted export table.

    Invalid identifiers are reported and make the status 1, but the
    remaining arguments are still applied. The name ``_`` is ignored.
    """
    if not args:
        _print_exports(env, out)
        return 0
    status = 0
    for arg in args:
        try:
            kind, name, value = parse_export_arg(arg)
        except ValueError:
            print_error("export", arg, "not a valid identifier", stream=err)
            status = 1
            continue
        if name == "_":
            continue
        if kind is ExportKind.NAME:
            env.add(name, "", False)
        elif kind is ExportKind.ASSIGN:
            env.add(name, value, True)
        else:
            previous = env.get_export(name)
            env.add(name, (previous or "") + value, True)
    return status