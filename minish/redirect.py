"""Commands, their redirections, and opening the files they name."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from .errors import ShellExit

_FILE_MODE = 0o644


@dataclass
class Redirection:
    """One ``<``, ``>``, ``>>`` or here-document redirection."""

    filename: Optional[str] = None
    output: bool = False
    append: bool = False
    heredoc: bool = False
    heredoc_file: Optional[str] = None
    ambiguous: bool = False


@dataclass
class Command:
    """A simple command: its name, arguments and redirections."""

    name: Optional[str] = None
    arguments: list[str] = field(default_factory=list)
    redirections: list[Redirection] = field(default_factory=list)


class RedirectionError(Exception):
    """A redirection could not be set up; the command is not run."""

    def __init__(self, message: str, status: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class Streams:
    """Files opened for a command; ``None`` means the inherited stream."""

    stdin: Optional[BinaryIO] = None
    stdout: Optional[BinaryIO] = None

    def close(self) -> None:
        for name in ("stdin", "stdout"):
            stream = getattr(self, name)
            if stream is not None:
                stream.close()
                setattr(self, name, None)

    def __enter__(self) -> "Streams":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _open_input(redirection: Redirection) -> BinaryIO:
    if redirection.heredoc:
        path = redirection.heredoc_file
        try:
            fd = os.open(path, os.O_CREAT | os.O_RDWR, _FILE_MODE)
        except (OSError, TypeError):
            raise ShellExit(1, "Problem in HEREDOC FILE") from None
        os.unlink(path)
        return os.fdopen(fd, "rb")
    try:
        return open(redirection.filename, "rb")
    except OSError as exc:
        raise RedirectionError(f"{redirection.filename}: {exc.strerror}") from None


def _open_output(redirection: Redirection) -> BinaryIO:
    filename = redirection.filename
    if os.path.isdir(filename):
        raise RedirectionError(f"{filename}: Is a directory")
    flags = os.O_CREAT | os.O_RDWR
    flags |= os.O_APPEND if redirection.append else os.O_TRUNC
    try:
        fd = os.open(filename, flags, _FILE_MODE)
    except OSError as exc:
        raise RedirectionError(f"{filename}: {exc.strerror}") from None
    return os.fdopen(fd, "ab" if redirection.append else "wb")


def open_redirections(command: Command) -> Streams:
    """Open the command's redirections in order; later ones win.

    Raises :class:`RedirectionError` (status 1) for an ambiguous redirect
    or a file that cannot be opened; anything already opened is closed.
    """
    streams = Streams()
    try:
        for redirection in command.redirections:
            if redirection.ambiguous and not redirection.heredoc:
                raise RedirectionError(f"{redirection.filename}: ambiguous redirect")
            if redirection.output:
                if streams.stdout is not None:
                    streams.stdout.close()
                    streams.stdout = None
                streams.stdout = _open_output(redirection)
            else:
                if streams.stdin is not None:
                    streams.stdin.close()
                    streams.stdin = None
                streams.stdin = _open_input(redirection)
    except BaseException:
        streams.close()
        raise
    return streams