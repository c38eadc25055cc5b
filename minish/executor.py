"""Running parsed commands: builtins in-process, other programs as children."""

from __future__ import annotations

import contextlib
import errno
import io
import os
import signal
import subprocess
import sys
import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import IO, Optional, TextIO

from .builtins import cd, echo, env_command, exit_command, pwd, unset
from .environment import Environment
from .errors import ShellExit, print_error
from .export import export_command
from .redirect import Command, RedirectionError, Streams, open_redirections

BUILTINS = frozenset({"echo", "pwd", "env", "cd", "exit", "export", "unset"})


class CommandError(Exception):
    """A command could not be found or cannot be executed."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


def build_argv(name: str, arguments: Sequence[str]) -> list[str]:
    """The argument vector for a program: its name followed by its arguments."""
    return [name, *arguments]


def is_builtin(name: Optional[str]) -> bool:
    """Whether ``name`` is run by the shell itself."""
    return name in BUILTINS


def resolve_command(name: str, env: Environment) -> Optional[str]:
    """Find the file that runs ``name``.

    A name holding ``/`` is used as it is; a directory gives status 126, a
    missing file 127 and a file that cannot be executed 126. Otherwise each
    directory of the exported ``PATH`` is searched, and a name found in none
    of them gives status 127. Without ``PATH`` nothing is run and ``None``
    is returned.
    """
    if "/" in name:
        if os.path.isdir(name):
            raise CommandError(f"{name}: Is a directory", 126)
        if os.access(name, os.X_OK):
            return name
        try:
            os.stat(name)
        except OSError as exc:
            code, reason = exc.errno, exc.strerror
        else:
            code, reason = errno.EACCES, os.strerror(errno.EACCES)
        raise CommandError(f"{name}: {reason}", 127 if code == errno.ENOENT else 126)
    search_path = env.get_export("PATH")
    if search_path is None:
        return None
    for directory in filter(None, search_path.split(":")):
        candidate = f"{directory}/{name}"
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    raise CommandError(f"{name}: command not found", 127)


def _fileno(stream: Optional[IO]) -> Optional[int]:
    if stream is None:
        return None
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


@contextlib.contextmanager
def _ignoring_sigint() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, signal.SIG_DFL if previous is None else previous)


class _Finished:
    """A pipeline stage whose status is known without waiting."""

    def __init__(self, status: int) -> None:
        self.status = status

    def wait(self) -> int:
        return self.status


class _Collector:
    """Reads a pipe in the background and keeps what was written to it."""

    def __init__(self) -> None:
        self._read_fd, self.write_fd = os.pipe()
        self._data = b""
        self._thread = threading.Thread(target=self._drain, daemon=True)
        self._thread.start()

    def _drain(self) -> None:
        with os.fdopen(self._read_fd, "rb") as reader:
            self._data = reader.read()

    def close_write(self) -> None:
        os.close(self.write_fd)

    def result(self) -> str:
        self._thread.join()
        return self._data.decode(errors="replace")


class _BuiltinStage:
    """A builtin running in a thread on a copy of the environment."""

    def __init__(self, executor: "Executor", command: Command, out_fd: int) -> None:
        self._status = 0
        self._thread = threading.Thread(
            target=self._run, args=(executor, command, out_fd), daemon=True
        )
        self._thread.start()

    def _run(self, executor: "Executor", command: Command, out_fd: int) -> None:
        env = executor.env.copy()
        out = os.fdopen(out_fd, "w", encoding="utf-8")
        try:
            self._status = executor._call_builtin(env, command, out)
        except ShellExit as exc:
            if exc.message:
                print_error(exc.message, stream=executor.stderr)
            self._status = exc.status
        except BrokenPipeError:
            self._status = -signal.SIGPIPE
        finally:
            with contextlib.suppress(BrokenPipeError):
                out.close()

    def wait(self) -> int:
        self._thread.join()
        return self._status


@dataclass
class Executor:
    """Runs commands against an environment and remembers the last status.

    ``stdout`` and ``stderr`` default to the process's own streams; ``stdin``
    left as ``None`` is inherited by the programs that are started.
    """

    env: Environment
    stdout: Optional[TextIO] = None
    stderr: Optional[TextIO] = None
    stdin: Optional[IO] = None
    last_status: int = 0

    def __post_init__(self) -> None:
        if self.stdout is None:
            self.stdout = sys.stdout
        if self.stderr is None:
            self.stderr = sys.stderr

    def run(self, commands: Sequence[Command]) -> int:
        """Run one command or a pipeline of them and return the status.

        :class:`ShellExit` raised by ``exit`` or a broken here-document
        outside a pipeline is passed on to the caller.
        """
        commands = list(commands)
        if not commands:
            return self.last_status
        if len(commands) == 1:
            return self.run_simple(commands[0])
        return self.run_pipeline(commands)

    def run_simple(self, command: Command) -> int:
        """Run a single command; builtins change the shell's own state."""
        try:
            streams = open_redirections(command)
        except RedirectionError as exc:
            print_error(exc.message, stream=self.stderr)
            self.last_status = exc.status
            return exc.status
        with streams:
            if command.name is None:
                return self.last_status
            if is_builtin(command.name):
                status = self._run_builtin_here(command, streams)
            else:
                status = self._run_external(command, streams)
        self.last_status = status
        return status

    def run_pipeline(self, commands: Sequence[Command]) -> int:
        """Run commands connected by pipes; the last one gives the status.

        Builtins in a pipeline work on a copy of the environment, so their
        changes are not kept.
        """
        commands = list(commands)
        if not commands:
            return self.last_status
        self._flush()
        pipes = [os.pipe() for _ in commands[1:]]
        final_fd = _fileno(self.stdout)
        collector = None
        if final_fd is None:
            collector = _Collector()
            final_fd = collector.write_fd
        stages = []
        try:
            for index, command in enumerate(commands):
                read_fd = pipes[index - 1][0] if index else _fileno(self.stdin)
                write_fd = pipes[index][1] if index < len(pipes) else final_fd
                stages.append(self._start_stage(command, read_fd, write_fd))
        finally:
            for read_end, write_end in pipes:
                os.close(read_end)
                os.close(write_end)
            if collector is not None:
                collector.close_write()
        with _ignoring_sigint():
            codes = [stage.wait() for stage in stages]
        if collector is not None:
            self.stdout.write(collector.result())
            self.stdout.flush()
        status = self.last_status
        for code in codes:
            status = self._decode(code)
        self.last_status = status
        return status

    def _flush(self) -> None:
        for stream in (self.stdout, self.stderr):
            with contextlib.suppress(OSError, ValueError):
                stream.flush()

    def _child_env(self) -> dict[str, str]:
        return dict(entry.partition("=")[::2] for entry in self.env.to_envp())

    def _decode(self, code: int) -> int:
        if code < 0:
            if -code == signal.SIGINT:
                self.stdout.write("\n")
                self.stdout.flush()
            return 128 - code
        return code

    def _call_builtin(self, env: Environment, command: Command, out: TextIO) -> int:
        name, args = command.name, command.arguments
        if name == "echo":
            return echo(env, args, out)
        if name == "pwd":
            return pwd(env, args, out, self.stderr)
        if name == "env":
            return env_command(env, args, out)
        if name == "cd":
            return cd(env, args, self.stderr)
        if name == "exit":
            return exit_command(env, args, self.last_status, self.stderr)
        if name == "export":
            return export_command(env, args, out, self.stderr)
        return unset(env, args)

    def _run_builtin_here(self, command: Command, streams: Streams) -> int:
        if streams.stdout is None:
            return self._call_builtin(self.env, command, self.stdout)
        wrapper = io.TextIOWrapper(streams.stdout, encoding="utf-8", write_through=True)
        try:
            return self._call_builtin(self.env, command, wrapper)
        finally:
            wrapper.flush()
            wrapper.detach()

    def _run_external(self, command: Command, streams: Streams) -> int:
        try:
            path = resolve_command(command.name, self.env)
        except CommandError as exc:
            print_error(exc.message, stream=self.stderr)
            return exc.status
        if path is None:
            return 0
        stdin = streams.stdin if streams.stdin is not None else _fileno(self.stdin)
        if streams.stdout is not None:
            stdout = streams.stdout
        else:
            fd = _fileno(self.stdout)
            stdout = fd if fd is not None else subprocess.PIPE
        self._flush()
        try:
            process = subprocess.Popen(
                build_argv(command.name, command.arguments),
                executable=path,
                stdin=stdin,
                stdout=stdout,
                stderr=_fileno(self.stderr),
                env=self._child_env(),
            )
        except OSError:
            print_error(command.name, "command not found", stream=self.stderr)
            return 127
        with _ignoring_sigint():
            output, _ = process.communicate()
        if output is not None:
            self.stdout.write(output.decode(errors="replace"))
            self.stdout.flush()
        return self._decode(process.returncode)

    def _start_stage(self, command: Command, read_fd: Optional[int], write_fd: int):
        try:
            streams = open_redirections(command)
        except (RedirectionError, ShellExit) as exc:
            if exc.message:
                print_error(exc.message, stream=self.stderr)
            return _Finished(exc.status)
        with streams:
            if command.name is None:
                return _Finished(0)
            stdin_fd = streams.stdin.fileno() if streams.stdin is not None else read_fd
            stdout_fd = streams.stdout.fileno() if streams.stdout is not None else write_fd
            if command.name == "cd":
                cwd = os.getcwd()
                try:
                    status = cd(self.env.copy(), command.arguments, self.stderr)
                finally:
                    os.chdir(cwd)
                return _Finished(status)
            if is_builtin(command.name):
                return _BuiltinStage(self, command, os.dup(stdout_fd))
            return self._spawn(command, stdin_fd, stdout_fd)

    def _spawn(self, command: Command, stdin_fd: Optional[int], stdout_fd: int):
        try:
            path = resolve_command(command.name, self.env)
        except CommandError as exc:
            print_error(exc.message, stream=self.stderr)
            return _Finished(exc.status)
        if path is None:
            return _Finished(0)
        try:
            return subprocess.Popen(
                build_argv(command.name, command.arguments),
                executable=path,
                stdin=stdin_fd,
                stdout=stdout_fd,
                stderr=_fileno(self.stderr),
                env=self._child_env(),
            )
        except OSError:
            print_error(command.name, "command not found", stream=self.stderr)
            return _Finished(127)