"""The shell's two variable tables: the environment and the export list."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Optional, Union


@dataclass
class Variable:
    """A shell variable; ``assigned`` is false for a name exported without a value."""

    key: str
    value: str = ""
    assigned: bool = True


def _put(table: dict[str, Variable], key: str, value: str, assigned: bool) -> None:
    table.pop(key, None)
    table[key] = Variable(key, value, assigned)


@dataclass
class Environment:
    """Variables passed to children (``environ``) and those shown by ``export``."""

    environ: dict[str, Variable] = field(default_factory=dict)
    export: dict[str, Variable] = field(default_factory=dict)

    @classmethod
    def from_envp(
        cls,
        envp: Union[Mapping[str, str], Iterable[str]],
        argv0: str,
        cwd: Optional[str] = None,
    ) -> "Environment":
        """Build the tables from ``KEY=VALUE`` entries or a mapping.

        ``PWD``, ``SHLVL`` and ``_`` are added when missing, and the export
        list receives a valueless ``OLDPWD`` when it has none.
        """
        if cwd is None:
            cwd = os.getcwd()
        if isinstance(envp, Mapping):
            pairs = list(envp.items())
        else:
            pairs = [tuple(entry.partition("=")[::2]) for entry in envp]
        env = cls()
        for key, value in pairs:
            _put(env.environ, key, value, True)
        for key, value in (("PWD", cwd), ("SHLVL", "0"), ("_", argv0)):
            if key not in env.environ:
                _put(env.environ, key, value, True)
        for variable in env.environ.values():
            _put(env.export, variable.key, variable.value, True)
        if "OLDPWD" not in env.export:
            _put(env.export, "OLDPWD", "", False)
        return env

    def get_env(self, key: str) -> Optional[str]:
        """Value of ``key`` in the environment, or ``None``."""
        variable = self.environ.get(key)
        return None if variable is None else variable.value

    def get_export(self, key: str) -> Optional[str]:
        """Value of ``key`` in the export list, or ``None``."""
        variable = self.export.get(key)
        return None if variable is None else variable.value

    def has_export(self, key: str) -> bool:
        return key in self.export

    def has_env(self, key: str) -> bool:
        return key in self.environ

    def add(self, key: str, value: str = "", assigned: bool = True) -> None:
        """Define a variable.

        An assigned variable replaces any earlier one and goes to the end of
        both tables. An unassigned one is only listed for export, and only
        when the name is not already exported.
        """
        if assigned:
            self.remove(key)
            _put(self.environ, key, value, True)
            _put(self.export, key, value, True)
        elif key not in self.export:
            _put(self.export, key, "", False)

    def remove(self, key: str) -> None:
        """Drop ``key`` from both tables; unknown names are ignored."""
        self.environ.pop(key, None)
        self.export.pop(key, None)

    def sorted_export(self) -> list[Variable]:
        """Sort the export list by byte order of the names and return it."""
        ordered = sorted(self.export.values(), key=lambda v: v.key.encode())
        self.export = {variable.key: variable for variable in ordered}
        return ordered

    def to_envp(self) -> list[str]:
        """The environment as ``KEY=VALUE`` strings, in definition order."""
        return [f"{v.key}={v.value}" for v in self.environ.values()]

    def update_after_cd(self, cwd: Optional[str] = None) -> None:
        """Refresh ``PWD`` and ``OLDPWD`` after the working directory changed."""
        if cwd is None:
            cwd = os.getcwd()
        previous = self.get_env("PWD")
        if previous is None:
            self.environ.pop("OLDPWD", None)
            oldpwd = self.export.get("OLDPWD")
            if oldpwd is not None:
                oldpwd.value = ""
                oldpwd.assigned = False
            return
        for table in (self.environ, self.export):
            if "PWD" in table:
                table["PWD"].value = cwd
        if "OLDPWD" not in self.export:
            return
        if "OLDPWD" not in self.environ:
            _put(self.environ, "OLDPWD", "", True)
        for table in (self.environ, self.export):
            table["OLDPWD"].value = previous
            table["OLDPWD"].assigned = True

    def copy(self) -> "Environment":
        """An independent copy of both tables."""
        return Environment(
            {k: replace(v) for k, v in self.environ.items()},
            {k: replace(v) for k, v in self.export.items()},
        )