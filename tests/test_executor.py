import io
import os
import sys

import pytest

from minish.environment import Environment
from minish.errors import ShellExit
from minish.executor import (
    CommandError,
    Executor,
    build_argv,
    is_builtin,
    resolve_command,
)
from minish.redirect import Command, Redirection

PY = sys.executable


def make_env(path_dir=None):
    entries = {"HOME": "/"}
    if path_dir is not None:
        entries["PATH"] = str(path_dir)
    return Environment.from_envp(entries, "minish", cwd=os.getcwd())


def make_executor(env=None):
    out, err = io.StringIO(), io.StringIO()
    executor = Executor(env if env is not None else make_env(), stdout=out, stderr=err)
    return executor, out, err


def test_build_argv_puts_name_first():
    assert build_argv("ls", ["-l", "/tmp"]) == ["ls", "-l", "/tmp"]
    assert build_argv("ls", []) == ["ls"]


@pytest.mark.parametrize("name", ["echo", "pwd", "env", "cd", "exit", "export", "unset"])
def test_builtin_names(name):
    assert is_builtin(name) is True


@pytest.mark.parametrize("name", ["ls", "ECHO", "", None])
def test_non_builtin_names(name):
    assert is_builtin(name) is False


def test_resolve_directory_is_126(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path), make_env())
    assert info.value.status == 126
    assert info.value.message == f"{tmp_path}: Is a directory"


def test_resolve_missing_path_is_127(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command(str(tmp_path / "missing"), make_env())
    assert info.value.status == 127


def test_resolve_not_executable_is_126(tmp_path):
    script = tmp_path / "plain"
    script.write_text("data")
    script.chmod(0o644)
    with pytest.raises(CommandError) as info:
        resolve_command(str(script), make_env())
    assert info.value.status == 126


def test_resolve_searches_path(tmp_path):
    tool = tmp_path / "tool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(0o755)
    assert resolve_command("tool", make_env(tmp_path)) == f"{tmp_path}/tool"


def test_resolve_not_found_in_path(tmp_path):
    with pytest.raises(CommandError) as info:
        resolve_command("nosuchcmd", make_env(tmp_path))
    assert info.value.status == 127
    assert info.value.message == "nosuchcmd: command not found"


def test_resolve_without_path_gives_none():
    assert resolve_command("anything", make_env()) is None


def test_simple_echo():
    executor, out, _ = make_executor()
    assert executor.run([Command("echo", ["hi"])]) == 0
    assert out.getvalue() == "hi \n"


def test_simple_builtin_redirected_to_file(tmp_path):
    target = tmp_path / "out.txt"
    executor, out, _ = make_executor()
    command = Command("echo", ["hi"], [Redirection(filename=str(target), output=True)])
    assert executor.run_simple(command) == 0
    assert target.read_bytes() == b"hi \n"
    assert out.getvalue() == ""


def test_simple_redirection_error_sets_status(tmp_path):
    executor, out, err = make_executor()
    command = Command("echo", ["hi"], [Redirection(filename=str(tmp_path / "none"))])
    assert executor.run_simple(command) == 1
    assert executor.last_status == 1
    assert "No such file or directory" in err.getvalue()
    assert out.getvalue() == ""


def test_simple_external_output_is_captured():
    executor, out, _ = make_executor()
    status = executor.run([Command(PY, ["-c", "print('x')"])])
    assert status == 0
    assert out.getvalue() == "x\n"


def test_simple_external_exit_status():
    executor, _, _ = make_executor()
    assert executor.run([Command(PY, ["-c", "import sys; sys.exit(3)"])]) == 3
    assert executor.last_status == 3


def test_simple_external_redirected(tmp_path):
    target = tmp_path / "py.txt"
    executor, out, _ = make_executor()
    command = Command(
        PY,
        ["-c", "print('to file')"],
        [Redirection(filename=str(target), output=True)],
    )
    assert executor.run_simple(command) == 0
    assert target.read_text() == "to file\n"
    assert out.getvalue() == ""


def test_external_gets_environment():
    env = make_env()
    env.add("GREETING", "hello", True)
    executor, out, _ = make_executor(env)
    executor.run([Command(PY, ["-c", "import os; print(os.environ['GREETING'])"])])
    assert out.getvalue() == "hello\n"


def test_command_not_found(tmp_path):
    executor, _, err = make_executor(make_env(tmp_path))
    assert executor.run([Command("nosuchcmd")]) == 127
    assert err.getvalue() == "nosuchcmd: command not found\n"


def test_terminated_by_signal():
    executor, _, _ = make_executor()
    code = "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"
    assert executor.run([Command(PY, ["-c", code])]) == 143


def test_interrupted_prints_newline():
    executor, out, _ = make_executor()
    code = (
        "import os, signal; signal.signal(signal.SIGINT, signal.SIG_DFL); "
        "os.kill(os.getpid(), signal.SIGINT)"
    )
    assert executor.run([Command(PY, ["-c", code])]) == 130
    assert out.getvalue() == "\n"


def test_empty_command_keeps_status():
    executor, _, _ = make_executor()
    executor.last_status = 5
    assert executor.run_simple(Command(None)) == 5


def test_simple_cd_changes_environment(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "sub"
    target.mkdir()
    executor, _, _ = make_executor()
    assert executor.run([Command("cd", [str(target)])]) == 0
    assert os.getcwd() == executor.env.get_env("PWD")
    assert os.path.samefile(os.getcwd(), target)


def test_simple_exit_raises():
    executor, _, _ = make_executor()
    with pytest.raises(ShellExit) as info:
        executor.run([Command("exit", ["7"])])
    assert info.value.status == 7


def test_simple_export_persists():
    executor, _, _ = make_executor()
    executor.run([Command("export", ["A=1"])])
    assert executor.env.get_env("A") == "1"


def test_pipeline_builtin_into_external():
    executor, out, _ = make_executor()
    status = executor.run(
        [
            Command("echo", ["hello"]),
            Command(PY, ["-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]),
        ]
    )
    assert status == 0
    assert out.getvalue() == "HELLO \n"


def test_pipeline_status_is_last_stage():
    executor, _, _ = make_executor()
    failing = Command(PY, ["-c", "import sys; sys.exit(5)"])
    assert executor.run_pipeline([Command("echo", ["x"]), failing]) == 5
    assert executor.run_pipeline([failing, Command("echo", ["x"])]) == 0
    assert executor.last_status == 0


def test_pipeline_builtins_do_not_change_environment():
    executor, out, _ = make_executor()
    executor.run([Command("export", ["A=1"]), Command("echo", ["x"])])
    assert executor.env.has_env("A") is False
    assert out.getvalue() == "x \n"


def test_pipeline_cd_does_not_move_shell(tmp_path):
    before = os.getcwd()
    executor, _, _ = make_executor()
    assert executor.run([Command("cd", [str(tmp_path)]), Command("echo", ["x"])]) == 0
    assert os.getcwd() == before


def test_pipeline_exit_does_not_leave():
    executor, _, _ = make_executor()
    assert executor.run([Command("echo", ["x"]), Command("exit", ["4"])]) == 4


def test_pipeline_stage_redirected_to_file(tmp_path):
    target = tmp_path / "first.txt"
    executor, out, _ = make_executor()
    first = Command("echo", ["kept"], [Redirection(filename=str(target), output=True)])
    executor.run([first, Command("echo", ["last"])])
    assert target.read_bytes() == b"kept \n"
    assert out.getvalue() == "last \n"


def test_pipeline_not_found_stage(tmp_path):
    executor, _, err = make_executor(make_env(tmp_path))
    status = executor.run([Command("echo", ["x"]), Command("nosuchcmd")])
    assert status == 127
    assert "nosuchcmd: command not found" in err.getvalue()