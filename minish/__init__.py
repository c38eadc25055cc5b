"""Execution core of a small POSIX-style shell: environment, builtins, redirections and pipelines."""

__version__ = "0.1.0"
__all__ = ["builtins", "environment", "errors", "executor", "export", "redirect"]